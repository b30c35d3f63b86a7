"""Data access layer for contracts, calendars and company configuration"""

import dataclasses
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from lending_engine.domain.exceptions import ConfigurationError, ContractNotFoundError, ModalityInUseError
from lending_engine.domain.modality import PaymentModality
from lending_engine.domain.models import Arrear, Contract, ContractPendingStatus, Holiday, Movement, Parameters
from lending_engine.infrastructure.database.models import (
    ArrearRow,
    ContractPaymentRow,
    ContractPendingStatusRow,
    ContractRow,
    HolidayRow,
    MovementRow,
    ParameterRow,
    PaymentModalityRow,
    TrackRow,
)
from lending_engine.infrastructure.observability.metrics import audit_failure_counter

logger = logging.getLogger(__name__)

STATUS_FIELDS = [f.name for f in dataclasses.fields(ContractPendingStatus)]
PARAMETER_FIELDS = [f.name for f in dataclasses.fields(Parameters) if f.name != "company_id"]
MODALITY_FIELDS = ("title", "type", "percent", "days", "weeks", "fortnights", "months", "off_days")


def to_modality(row: PaymentModalityRow) -> PaymentModality:
    """Map a modality row to the domain type (validates cadence and percent)"""
    return PaymentModality(
        id=row.id,
        company_id=row.company_id,
        type=row.type,
        percent=row.percent,
        days=row.days or 0,
        weeks=row.weeks or 0,
        fortnights=row.fortnights or 0,
        months=row.months or 0,
        off_days=bool(row.off_days),
        title=row.title or "",
    )


def to_movement(row: MovementRow) -> Movement:
    return Movement(
        id=row.id,
        amount_cents=row.amount_cents,
        movement_date=row.movement_date,
        validated=row.validated,
        kind=row.kind,
        direction=row.direction,
    )


def payment_to_movement(row: ContractPaymentRow) -> Movement:
    """Registered payments always carry money in"""
    return Movement(
        id=row.id,
        amount_cents=row.amount_cents,
        movement_date=row.payment_date,
        validated=row.validated,
        kind=row.kind,
        direction="in",
    )


def to_pending_status(row: ContractPendingStatusRow) -> ContractPendingStatus:
    return ContractPendingStatus(**{name: getattr(row, name) for name in STATUS_FIELDS})


class ContractRepository:
    """Repository for contracts and their materialized pending status"""

    def __init__(self, db: Session):
        self.db = db

    def list_active_contract_ids(self, company_id: Optional[str] = None) -> List[str]:
        """Ids of contracts still being collected"""
        query = self.db.query(ContractRow.id).filter(ContractRow.is_active.is_(True))
        if company_id is not None:
            query = query.filter(ContractRow.company_id == company_id)
        return [contract_id for (contract_id,) in query.order_by(ContractRow.created_at, ContractRow.id).all()]

    def get_contract_row(self, contract_id: str) -> ContractRow:
        row = (
            self.db.query(ContractRow)
            .options(
                selectinload(ContractRow.modality),
                selectinload(ContractRow.movements),
                selectinload(ContractRow.payments),
            )
            .filter(ContractRow.id == contract_id)
            .first()
        )
        if row is None:
            raise ContractNotFoundError(f"Contract {contract_id} not found")
        return row

    def get_contract(self, contract_id: str) -> Contract:
        """Fetch a contract with its modality, movements and payments"""
        row = self.get_contract_row(contract_id)
        return Contract(
            id=row.id,
            company_id=row.company_id,
            route_id=row.route_id,
            modality=to_modality(row.modality) if row.modality is not None else None,
            principal_cents=row.principal_cents,
            start_date=row.start_date,
            is_active=row.is_active,
            finished_at=row.finished_at,
            movements=[to_movement(m) for m in row.movements],
            payments=[payment_to_movement(p) for p in row.payments],
        )

    def get_pending_status(self, contract_id: str) -> Optional[ContractPendingStatus]:
        row = self.db.get(ContractPendingStatusRow, contract_id)
        return to_pending_status(row) if row is not None else None

    def save_pending_status(self, contract_id: str, status: ContractPendingStatus) -> ContractPendingStatusRow:
        """Insert or overwrite the persisted status of a contract"""
        row = self.db.get(ContractPendingStatusRow, contract_id)
        if row is None:
            row = ContractPendingStatusRow(contract_id=contract_id)
            self.db.add(row)
        for name in STATUS_FIELDS:
            setattr(row, name, getattr(status, name))
        self.db.flush()
        return row

    def mark_finished(self, contract_id: str, at: datetime) -> None:
        """Deactivate a fully paid contract"""
        row = self.get_contract_row(contract_id)
        row.is_active = False
        row.finished_at = at
        self.db.flush()

    def list_pending_statuses(self, company_id: str) -> List[ContractPendingStatus]:
        """Persisted statuses of a company's active contracts"""
        rows = (
            self.db.query(ContractPendingStatusRow)
            .join(ContractRow, ContractRow.id == ContractPendingStatusRow.contract_id)
            .filter(ContractRow.company_id == company_id, ContractRow.is_active.is_(True))
            .all()
        )
        return [to_pending_status(row) for row in rows]

    def list_inactive_contracts(self) -> List[ContractRow]:
        return self.db.query(ContractRow).filter(ContractRow.is_active.is_(False)).all()

    def delete_contract(self, row: ContractRow) -> None:
        """Delete a contract together with its movements, payments, notes and status"""
        self.db.delete(row)
        self.db.flush()


class HolidayRepository:
    """Repository for company holidays (rest days included)"""

    def __init__(self, db: Session):
        self.db = db

    def list_holidays(self, company_id: str) -> List[Holiday]:
        rows = (
            self.db.query(HolidayRow)
            .filter(
                HolidayRow.company_id == company_id,
                HolidayRow.is_active.is_(True),
                HolidayRow.deleted.is_(False),
            )
            .order_by(HolidayRow.holiday_date)
            .all()
        )
        return [Holiday(company_id=r.company_id, holiday_date=r.holiday_date, description=r.description) for r in rows]

    def insert_holidays(self, company_id: str, dates: Iterable[date], description: str) -> List[date]:
        """
        Insert holidays for dates the company does not have yet.

        Any existing row for a date (even a deleted one) blocks the insert, matching the
        unique (company_id, holiday_date) constraint.

        Returns:
            The dates actually inserted, ascending
        """
        wanted = sorted(set(dates))
        if not wanted:
            return []

        existing = {
            holiday_date
            for (holiday_date,) in self.db.query(HolidayRow.holiday_date)
            .filter(HolidayRow.company_id == company_id, HolidayRow.holiday_date.in_(wanted))
            .all()
        }

        created = [day for day in wanted if day not in existing]
        for day in created:
            self.db.add(HolidayRow(company_id=company_id, holiday_date=day, description=description))
        self.db.flush()
        return created


class ParameterRepository:
    """Repository for per-company parameters"""

    def __init__(self, db: Session):
        self.db = db

    def get_parameters(self, company_id: str) -> Parameters:
        row = self.db.query(ParameterRow).filter(ParameterRow.company_id == company_id).first()
        if row is None:
            raise ConfigurationError(f"Company {company_id} has no parameters configured")
        return Parameters(company_id=company_id, **{name: getattr(row, name) for name in PARAMETER_FIELDS})


class ArrearRepository:
    """Repository for monthly late-fee rates"""

    def __init__(self, db: Session):
        self.db = db

    def _active(self, company_id: str):
        return self.db.query(ArrearRow).filter(
            ArrearRow.company_id == company_id,
            ArrearRow.is_active.is_(True),
            ArrearRow.deleted.is_(False),
        )

    def get_arrear(self, company_id: str, year: int, month: int) -> Optional[Arrear]:
        row = self._active(company_id).filter(ArrearRow.year == year, ArrearRow.month == month).first()
        if row is None:
            return None
        return Arrear(company_id=row.company_id, year=row.year, month=row.month, percent=row.percent)

    def list_arrears(self, company_id: str) -> List[Arrear]:
        rows = self._active(company_id).order_by(ArrearRow.year, ArrearRow.month).all()
        return [Arrear(company_id=r.company_id, year=r.year, month=r.month, percent=r.percent) for r in rows]


class ModalityRepository:
    """Repository for payment modalities"""

    def __init__(self, db: Session):
        self.db = db

    def get_modality(self, modality_id: str) -> Optional[PaymentModality]:
        row = self.db.get(PaymentModalityRow, modality_id)
        return to_modality(row) if row is not None else None

    def update_modality(self, modality_id: str, **changes: Any) -> PaymentModality:
        """
        Edit a modality nobody references yet.

        Contracts read their schedule from the modality, so editing a referenced one would
        silently rewrite existing schedules.

        Raises:
            ModalityInUseError: a contract references the modality
            ConfigurationError: unknown field or an invalid resulting modality
        """
        row = self.db.get(PaymentModalityRow, modality_id)
        if row is None:
            raise ConfigurationError(f"Payment modality {modality_id} not found")

        unknown = set(changes) - set(MODALITY_FIELDS)
        if unknown:
            raise ConfigurationError(f"Cannot update modality fields: {', '.join(sorted(unknown))}")

        in_use = self.db.query(ContractRow.id).filter(ContractRow.modality_id == modality_id).first()
        if in_use is not None:
            raise ModalityInUseError(f"Payment modality {modality_id} is referenced by contract {in_use[0]}")

        for name, value in changes.items():
            setattr(row, name, value.value if isinstance(value, Enum) else value)

        modality = to_modality(row)
        self.db.flush()
        return modality


class TrackRepository:
    """Repository for the audit trail"""

    def __init__(self, db: Session):
        self.db = db

    def record_event(self, description: str, actor: str, ip: Optional[str], module: str) -> TrackRow:
        row = TrackRow(description=description, actor=actor, ip=ip, module=module)
        self.db.add(row)
        self.db.flush()
        return row


class AuditSink:
    """
    Fire-and-forget audit writer.

    Events are written in their own session so an audit failure never rolls back or
    aborts the business operation that produced it.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def record(self, description: str, actor: str, ip: Optional[str], module: str) -> None:
        db = self.session_factory()
        try:
            TrackRepository(db).record_event(description, actor, ip, module)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            audit_failure_counter.inc()
            logger.warning(f"Audit event not recorded: {e}", extra={"audit_module": module, "actor": actor})
        finally:
            db.close()
