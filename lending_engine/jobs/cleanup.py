"""Finished-contract cleanup - removes settled contracts once the grace period is over"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lending_engine.config import settings
from lending_engine.domain.exceptions import TransientError
from lending_engine.infrastructure.database.repositories import AuditSink, ContractRepository
from lending_engine.infrastructure.observability.metrics import purged_contract_counter

logger = logging.getLogger(__name__)


def _comparable(finished_at: datetime, now: datetime) -> datetime:
    # SQLite hands timestamps back without their offset
    if finished_at.tzinfo is None and now.tzinfo is not None:
        return finished_at.replace(tzinfo=now.tzinfo)
    return finished_at


def purge_finished_contracts(
    db: Session,
    now: datetime,
    grace_days: Optional[int] = None,
    audit: Optional[AuditSink] = None,
) -> int:
    """
    Delete inactive contracts finished more than `grace_days` ago.

    Inactive contracts without a finish timestamp were cancelled rather than paid and
    are removed right away. Movements, payments, notes and the pending status go with
    the contract.

    Returns:
        Number of contracts deleted
    """
    grace_days = settings.finished_contract_grace_days if grace_days is None else grace_days
    cutoff = now - timedelta(days=grace_days)
    repository = ContractRepository(db)

    try:
        purged = 0
        for row in repository.list_inactive_contracts():
            if row.finished_at is not None and _comparable(row.finished_at, now) > cutoff:
                continue
            logger.info(
                "Purging finished contract",
                extra={"contract_id": row.id, "company_id": row.company_id, "step": "purge"},
            )
            repository.delete_contract(row)
            purged += 1
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise TransientError(f"Could not purge finished contracts: {e}") from e

    purged_contract_counter.inc(purged)

    if audit is not None and purged:
        audit.record(
            f"Purged {purged} finished contracts older than {grace_days} days",
            actor="system",
            ip=None,
            module="jobs",
        )

    return purged
