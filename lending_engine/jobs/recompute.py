"""
Recompute job - refreshes the pending status of every active contract.

Run by an external scheduler around midnight (business timezone):

    python -m lending_engine.jobs.recompute [--company-id ID] [--purge]
"""

import argparse
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from lending_engine.config import settings
from lending_engine.domain.exceptions import DomainException, TransientError
from lending_engine.domain.models import ContractPendingStatus, RecomputeFailure, RecomputeResult
from lending_engine.domain.scoring import compute_pending_status
from lending_engine.infrastructure.database.repositories import (
    ArrearRepository,
    AuditSink,
    ContractRepository,
    ParameterRepository,
)
from lending_engine.infrastructure.database.session import SessionLocal
from lending_engine.infrastructure.observability.logging import log_recompute_summary, setup_logging
from lending_engine.infrastructure.observability.metrics import (
    finished_contract_counter,
    record_recompute_outcome,
    recompute_duration_histogram,
)
from lending_engine.jobs.cleanup import purge_finished_contracts
from lending_engine.services.calendar import load_calendar
from lending_engine.utils.date_utils import now_in_timezone

logger = logging.getLogger(__name__)

UPDATED = "updated"
UNCHANGED = "unchanged"
FAILED = "failed"


def changed_fields(current: Optional[ContractPendingStatus], updated: ContractPendingStatus) -> List[str]:
    """Names of the status fields that differ; every field when nothing is persisted yet"""
    if current is None:
        return list(updated.__dataclass_fields__)
    return [name for name in updated.__dataclass_fields__ if getattr(current, name) != getattr(updated, name)]


def has_status_changed(current: Optional[ContractPendingStatus], updated: ContractPendingStatus) -> bool:
    return bool(changed_fields(current, updated))


class RecomputeRunner:
    """
    Recompute pending statuses with bounded parallelism.

    Each contract is processed in its own session: one consistent snapshot in, at most
    one write out. A failing contract is reported and skipped; it never aborts the batch.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        max_workers: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
        audit: Optional[AuditSink] = None,
    ):
        self.session_factory = session_factory
        self.max_workers = max_workers or settings.recompute_max_workers
        self.clock = clock or (lambda: now_in_timezone(settings.timezone))
        self.audit = audit

    def list_contract_ids(self, company_id: Optional[str] = None) -> List[str]:
        db = self.session_factory()
        try:
            return ContractRepository(db).list_active_contract_ids(company_id)
        except SQLAlchemyError as e:
            raise TransientError(f"Could not list active contracts: {e}") from e
        finally:
            db.close()

    def recompute_contract(self, contract_id: str, now: Optional[datetime] = None) -> Tuple[str, ContractPendingStatus]:
        """
        Recompute one contract and persist its status only if a field changed.

        A contract with nothing left to pay is deactivated with `finished_at = now`.

        Returns:
            ("updated" | "unchanged", computed status)

        Raises:
            ConfigurationError, DataIntegrityError: contract cannot be classified
            TransientError: storage failure, retried by the next run
        """
        now = now or self.clock()
        db = self.session_factory()
        try:
            contracts = ContractRepository(db)
            contract = contracts.get_contract(contract_id)
            parameters = ParameterRepository(db).get_parameters(contract.company_id)
            arrears = ArrearRepository(db).list_arrears(contract.company_id)
            calendar = load_calendar(db, contract.company_id, parameters)

            status = compute_pending_status(contract, calendar, parameters, arrears, now.date())

            changed = changed_fields(contracts.get_pending_status(contract_id), status)
            if changed:
                contracts.save_pending_status(contract_id, status)

            if status.balance_cents == 0 and contract.is_active:
                contracts.mark_finished(contract_id, now)
                finished_contract_counter.inc()
                logger.info("Contract finished", extra={"contract_id": contract_id, "step": "finish"})

            db.commit()

        except SQLAlchemyError as e:
            db.rollback()
            raise TransientError(f"Storage error recomputing contract {contract_id}: {e}") from e

        except Exception:
            db.rollback()
            raise

        finally:
            db.close()

        if changed:
            logger.debug("Pending status changed", extra={"contract_id": contract_id, "fields": changed})
            return UPDATED, status
        return UNCHANGED, status

    def run(self, company_id: Optional[str] = None) -> RecomputeResult:
        """Recompute every active contract (optionally of one company)"""
        start_time = time.perf_counter()
        now = self.clock()
        result = RecomputeResult()

        contract_ids = self.list_contract_ids(company_id)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self.recompute_contract, contract_id, now): contract_id
                for contract_id in contract_ids
            }
            for future in as_completed(futures):
                contract_id = futures[future]
                try:
                    outcome, status = future.result()

                except DomainException as e:
                    result.failed.append(RecomputeFailure(contract_id=contract_id, reason=str(e)))
                    record_recompute_outcome(FAILED)
                    logger.warning(
                        f"Contract skipped: {e}",
                        extra={"contract_id": contract_id, "step": "recompute", "error": type(e).__name__},
                    )
                    continue

                except Exception as e:
                    result.failed.append(RecomputeFailure(contract_id=contract_id, reason=f"Unexpected error: {e}"))
                    record_recompute_outcome(FAILED)
                    logger.error(
                        f"Unexpected error: {e}",
                        exc_info=True,
                        extra={"contract_id": contract_id, "step": "recompute"},
                    )
                    continue

                record_recompute_outcome(outcome, status.color)
                if outcome == UPDATED:
                    result.updated += 1
                else:
                    result.unchanged += 1

        duration = time.perf_counter() - start_time
        recompute_duration_histogram.observe(duration)
        log_recompute_summary(company_id, result.updated, result.unchanged, len(result.failed), duration * 1000)

        if self.audit is not None:
            self.audit.record(
                f"Recomputed pending statuses for {company_id or 'all companies'}: "
                f"{result.updated} updated, {result.unchanged} unchanged, {len(result.failed)} failed",
                actor="system",
                ip=None,
                module="jobs",
            )

        return result


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Recompute contract pending statuses")
    parser.add_argument("--company-id", help="Only recompute contracts of this company")
    parser.add_argument("--purge", action="store_true", help="Delete finished contracts past the grace period")
    parser.add_argument("--workers", type=int, default=None, help="Parallel workers (default from settings)")
    args = parser.parse_args(argv)

    setup_logging(settings.log_level)

    audit = AuditSink(SessionLocal)
    runner = RecomputeRunner(SessionLocal, max_workers=args.workers, audit=audit)

    try:
        result = runner.run(args.company_id)
    except TransientError as e:
        logger.error(f"Recompute aborted: {e}")
        return 1

    if args.purge:
        db = SessionLocal()
        try:
            purge_finished_contracts(db, runner.clock(), audit=audit)
        finally:
            db.close()

    return 1 if result.failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
