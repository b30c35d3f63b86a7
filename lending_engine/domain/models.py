"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from lending_engine.domain.modality import ModalityType, PaymentModality
from lending_engine.utils.money import percent_of


@dataclass(frozen=True)
class Holiday:
    """Non-collectible date for a company"""

    company_id: str
    holiday_date: date
    description: str


@dataclass(frozen=True)
class Arrear:
    """Late-fee rate effective for one calendar month"""

    company_id: str
    year: int
    month: int
    percent: Decimal


@dataclass(frozen=True)
class Parameters:
    """Per-company configuration read by the risk classifier"""

    company_id: str
    minimum_installments_yellow_daily: int = 3
    minimum_installments_yellow_weekly: int = 1
    minimum_installments_yellow_biweekly: int = 2
    minimum_installments_yellow_monthly: int = 2
    minimum_installments_red_daily: int = 4
    minimum_installments_red_weekly: int = 2
    minimum_installments_red_biweekly: int = 4
    minimum_installments_red_monthly: int = 4
    interest_rate_for_late_payment: Decimal = Decimal("0")
    default_max_client_debt_days: int = 30
    max_days_for_cancellation: int = 5
    late_fee_grace_days: int = 0
    rest_weekday: int = 6  # date.weekday() numbering, 6 = Sunday

    def thresholds_for(self, modality_type: ModalityType) -> Tuple[int, int]:
        """(yellow, red) minimum late-or-incomplete installment counts for a modality type"""
        suffix = {
            ModalityType.DAILY: "daily",
            ModalityType.WEEKLY: "weekly",
            ModalityType.FORTNIGHTLY: "biweekly",
            ModalityType.MONTHLY: "monthly",
        }[ModalityType(modality_type)]
        return (
            getattr(self, f"minimum_installments_yellow_{suffix}"),
            getattr(self, f"minimum_installments_red_{suffix}"),
        )


@dataclass(frozen=True)
class Movement:
    """Cash or bank entry recorded against a contract"""

    id: str
    amount_cents: int
    movement_date: date
    validated: bool
    kind: str = "cash"  # "cash" or "bank"
    direction: str = "in"  # "in" (collection) or "out" (disbursement)


@dataclass
class Contract:
    """Loan agreement with its recorded movements and payments"""

    id: str
    company_id: str
    route_id: Optional[str]
    modality: Optional[PaymentModality]
    principal_cents: int
    start_date: date
    is_active: bool = True
    finished_at: Optional[datetime] = None
    movements: List[Movement] = field(default_factory=list)
    payments: List[Movement] = field(default_factory=list)

    @property
    def total_obligation_cents(self) -> int:
        """Principal plus the modality surcharge"""
        if self.modality is None:
            return self.principal_cents
        return self.principal_cents + percent_of(self.principal_cents, self.modality.percent)

    @property
    def collections(self) -> List[Movement]:
        """Every entry that may carry money towards the schedule"""
        return [*self.movements, *self.payments]


@dataclass(frozen=True)
class Installment:
    """Single scheduled obligation"""

    number: int
    due_date: date
    amount_cents: int


@dataclass
class InstallmentAllocation:
    """Validated funds applied to one installment"""

    installment: Installment
    paid_cents: int = 0

    @property
    def outstanding_cents(self) -> int:
        return self.installment.amount_cents - self.paid_cents

    @property
    def is_complete(self) -> bool:
        return self.paid_cents >= self.installment.amount_cents


@dataclass
class Reconciliation:
    """Result of allocating a contract's movements against its schedule"""

    allocations: List[InstallmentAllocation]
    payed_cents: int  # Validated funds applied to installments
    not_validated_cents: int
    overpaid_cents: int  # Validated funds beyond the obligation, discarded
    last_payment_date: Optional[date]

    @property
    def total_due_cents(self) -> int:
        return sum(a.installment.amount_cents for a in self.allocations)

    @property
    def balance_cents(self) -> int:
        return sum(a.outstanding_cents for a in self.allocations)


@dataclass(frozen=True)
class ContractPendingStatus:
    """Derived collection status of a contract as of an evaluation date"""

    payed_amount_cents: int
    pending_amount_cents: int
    not_validated_amount_cents: int
    amount_late_or_incomplete_cents: int
    balance_cents: int
    late_fee_cents: int
    payments_late: int
    payments_up_to_date: int
    payments_incomplete: int
    payments_remaining: int
    days_expired: int
    days_ahead: int
    today_incomplete: bool
    days_pending: int
    is_outdated: bool
    payed_amount_problem: bool
    last_payment_date: Optional[date]
    icon: str
    color: str  # "green", "yellow" or "red"


@dataclass(frozen=True)
class RecomputeFailure:
    """Contract skipped by a recompute run"""

    contract_id: str
    reason: str


@dataclass
class RecomputeResult:
    """Outcome of a recompute run"""

    updated: int = 0
    unchanged: int = 0
    failed: List[RecomputeFailure] = field(default_factory=list)
