"""SQLAlchemy ORM models for contracts, their movements and the engine's reference data"""

import uuid
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Integer,
    Numeric,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func, true, false

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class PaymentModalityRow(Base):
    """Collection frequency configuration"""

    __tablename__ = "payment_modality"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(64), nullable=False, index=True)
    title = Column(Text, nullable=False, default="")
    type = Column(String(16), nullable=False)
    percent = Column(Numeric(6, 2), nullable=False)
    days = Column(Integer, nullable=False, default=0)
    weeks = Column(Integer, nullable=False, default=0)
    fortnights = Column(Integer, nullable=False, default=0)
    months = Column(Integer, nullable=False, default=0)
    off_days = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ParameterRow(Base):
    """Per-company thresholds and late-payment settings"""

    __tablename__ = "parameter"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(64), nullable=False, unique=True)
    minimum_installments_yellow_daily = Column(Integer, nullable=False, default=3)
    minimum_installments_yellow_weekly = Column(Integer, nullable=False, default=1)
    minimum_installments_yellow_biweekly = Column(Integer, nullable=False, default=2)
    minimum_installments_yellow_monthly = Column(Integer, nullable=False, default=2)
    minimum_installments_red_daily = Column(Integer, nullable=False, default=4)
    minimum_installments_red_weekly = Column(Integer, nullable=False, default=2)
    minimum_installments_red_biweekly = Column(Integer, nullable=False, default=4)
    minimum_installments_red_monthly = Column(Integer, nullable=False, default=4)
    interest_rate_for_late_payment = Column(Numeric(6, 2), nullable=False, default=0)
    default_max_client_debt_days = Column(Integer, nullable=False, default=30)
    max_days_for_cancellation = Column(Integer, nullable=False, default=5)
    late_fee_grace_days = Column(Integer, nullable=False, default=0)
    rest_weekday = Column(Integer, nullable=False, default=6)


class HolidayRow(Base):
    """Non-collectible date, including materialized rest days"""

    __tablename__ = "holiday"
    __table_args__ = (UniqueConstraint("company_id", "holiday_date", name="uq_holiday_company_date"),)

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(64), nullable=False, index=True)
    holiday_date = Column(Date, nullable=False)
    description = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ArrearRow(Base):
    """Monthly late-fee rate"""

    __tablename__ = "arrear"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(64), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    percent = Column(Numeric(6, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    deleted = Column(Boolean, nullable=False, default=False)


# One live rate per company month; deleted or inactive rows may repeat the month
_live_arrear = (ArrearRow.is_active == true()) & (ArrearRow.deleted == false())
Index(
    "uq_arrear_company_month",
    ArrearRow.company_id,
    ArrearRow.year,
    ArrearRow.month,
    unique=True,
    sqlite_where=_live_arrear,
    postgresql_where=_live_arrear,
)


class ContractRow(Base):
    """Loan agreement"""

    __tablename__ = "contract"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(64), nullable=False, index=True)
    route_id = Column(String(64), nullable=True)
    modality_id = Column(String(36), ForeignKey("payment_modality.id"), nullable=True)
    principal_cents = Column(BigInteger, nullable=False)
    start_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    modality = relationship("PaymentModalityRow")
    movements = relationship("MovementRow", back_populates="contract", cascade="all, delete-orphan")
    payments = relationship("ContractPaymentRow", back_populates="contract", cascade="all, delete-orphan")
    notes = relationship("ContractNoteRow", back_populates="contract", cascade="all, delete-orphan")
    pending_status = relationship(
        "ContractPendingStatusRow", back_populates="contract", uselist=False, cascade="all, delete-orphan"
    )


class MovementRow(Base):
    """Cash or bank movement recorded by a collector"""

    __tablename__ = "movement"

    id = Column(String(36), primary_key=True, default=new_id)
    contract_id = Column(String(36), ForeignKey("contract.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    movement_date = Column(Date, nullable=False)
    validated = Column(Boolean, nullable=False, default=False)
    kind = Column(String(8), nullable=False, default="cash")
    direction = Column(String(8), nullable=False, default="in")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    contract = relationship("ContractRow", back_populates="movements")


class ContractPaymentRow(Base):
    """Payment registered through the payments surface (card, transfer)"""

    __tablename__ = "contract_payment"

    id = Column(String(36), primary_key=True, default=new_id)
    contract_id = Column(String(36), ForeignKey("contract.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    payment_date = Column(Date, nullable=False)
    validated = Column(Boolean, nullable=False, default=False)
    kind = Column(String(8), nullable=False, default="bank")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    contract = relationship("ContractRow", back_populates="payments")


class ContractNoteRow(Base):
    """Collector note on a contract"""

    __tablename__ = "contract_note"

    id = Column(String(36), primary_key=True, default=new_id)
    contract_id = Column(String(36), ForeignKey("contract.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    contract = relationship("ContractRow", back_populates="notes")


class ContractPendingStatusRow(Base):
    """Materialized pending status, written only by the recompute job"""

    __tablename__ = "contract_pending_status"

    contract_id = Column(String(36), ForeignKey("contract.id", ondelete="CASCADE"), primary_key=True)
    payed_amount_cents = Column(BigInteger, nullable=False, default=0)
    pending_amount_cents = Column(BigInteger, nullable=False, default=0)
    not_validated_amount_cents = Column(BigInteger, nullable=False, default=0)
    amount_late_or_incomplete_cents = Column(BigInteger, nullable=False, default=0)
    balance_cents = Column(BigInteger, nullable=False, default=0)
    late_fee_cents = Column(BigInteger, nullable=False, default=0)
    payments_late = Column(Integer, nullable=False, default=0)
    payments_up_to_date = Column(Integer, nullable=False, default=0)
    payments_incomplete = Column(Integer, nullable=False, default=0)
    payments_remaining = Column(Integer, nullable=False, default=0)
    days_expired = Column(Integer, nullable=False, default=0)
    days_ahead = Column(Integer, nullable=False, default=0)
    today_incomplete = Column(Boolean, nullable=False, default=False)
    days_pending = Column(Integer, nullable=False, default=0)
    is_outdated = Column(Boolean, nullable=False, default=False)
    payed_amount_problem = Column(Boolean, nullable=False, default=False)
    last_payment_date = Column(Date, nullable=True)
    icon = Column(Text, nullable=False, default="")
    color = Column(Text, nullable=False, default="")
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    contract = relationship("ContractRow", back_populates="pending_status")


class TrackRow(Base):
    """Audit trail entry"""

    __tablename__ = "track"

    id = Column(String(36), primary_key=True, default=new_id)
    description = Column(Text, nullable=False)
    actor = Column(Text, nullable=False)
    ip = Column(Text, nullable=True)
    module = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
