"""Collector work queues derived from contract pending statuses"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Optional

from lending_engine.domain.models import ContractPendingStatus

UPDATED = "updated"
LATE = "late"
EXPIRED = "expired"

BUCKETS = (UPDATED, LATE, EXPIRED)


@dataclass
class BucketSummary:
    count: int = 0
    payed_today: int = 0
    percent: float = 0.0


@dataclass
class WorkQueueSummary:
    total: int = 0
    buckets: Dict[str, BucketSummary] = field(default_factory=lambda: {name: BucketSummary() for name in BUCKETS})

    @property
    def total_payed_today(self) -> int:
        return sum(bucket.payed_today for bucket in self.buckets.values())


def work_queue_bucket(status: ContractPendingStatus) -> Optional[str]:
    """
    Queue a collector works a contract from.

    - expired: debt kept past the company's maximum debt days
    - late:    late or incomplete installments, still within the debt window
    - updated: nothing owed so far (includes contracts paying ahead)
    Settled contracts belong to no queue.
    """
    if status.balance_cents <= 0:
        return None
    if status.is_outdated:
        return EXPIRED
    if status.payments_late > 0 or status.payments_incomplete > 0:
        return LATE
    return UPDATED


def summarize_work_queue(statuses: Iterable[ContractPendingStatus], today: date) -> WorkQueueSummary:
    """Count contracts per queue and how many of them paid today"""
    summary = WorkQueueSummary()

    for status in statuses:
        summary.total += 1
        bucket = work_queue_bucket(status)
        if bucket is None:
            continue
        summary.buckets[bucket].count += 1
        if status.last_payment_date == today:
            summary.buckets[bucket].payed_today += 1

    if summary.total:
        for bucket in summary.buckets.values():
            bucket.percent = round(bucket.count / summary.total * 100, 2)

    return summary
