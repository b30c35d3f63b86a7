"""Payment modality: collection frequency, cadence count and surcharge of a contract"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum

from lending_engine.domain.exceptions import ConfigurationError
from lending_engine.utils.date_utils import add_months


class ModalityType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    MONTHLY = "monthly"


# Cadence field that carries the period count for each type
CADENCE_FIELDS = {
    ModalityType.DAILY: "days",
    ModalityType.WEEKLY: "weeks",
    ModalityType.FORTNIGHTLY: "fortnights",
    ModalityType.MONTHLY: "months",
}

STEP_DAYS = {
    ModalityType.DAILY: 1,
    ModalityType.WEEKLY: 7,
    ModalityType.FORTNIGHTLY: 14,
}


@dataclass(frozen=True)
class PaymentModality:
    """Immutable collection configuration referenced by contracts"""

    id: str
    company_id: str
    type: ModalityType
    percent: Decimal  # Surcharge over principal, in percentage points
    days: int = 0
    weeks: int = 0
    fortnights: int = 0
    months: int = 0
    off_days: bool = False  # Collect on rest days too
    title: str = ""

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "type", ModalityType(self.type))
        except ValueError as e:
            raise ConfigurationError(f"Unknown modality type {self.type!r} for modality {self.id}") from e

        try:
            object.__setattr__(self, "percent", Decimal(str(self.percent)))
        except InvalidOperation as e:
            raise ConfigurationError(f"Invalid percent {self.percent!r} for modality {self.id}") from e

        if self.percent <= 0:
            raise ConfigurationError(f"Modality {self.id} percent must be positive, got {self.percent}")

        cadence_field = CADENCE_FIELDS[self.type]
        if self.period_count <= 0:
            raise ConfigurationError(f"Modality {self.id} ({self.type.value}) needs a positive {cadence_field}")

        others = [name for name in CADENCE_FIELDS.values() if name != cadence_field and getattr(self, name)]
        if others:
            raise ConfigurationError(
                f"Modality {self.id} ({self.type.value}) only uses {cadence_field}, got {', '.join(others)}"
            )

    @property
    def period_count(self) -> int:
        """Number of installments the modality schedules"""
        return getattr(self, CADENCE_FIELDS[self.type])

    def anchor_date(self, origin: date, period: int) -> date:
        """
        Nominal due date of the given period, counted from the origin.

        Months are added to the origin (not chained) so a contract started on the 31st
        keeps falling on month ends instead of drifting to the 28th.
        """
        if self.type == ModalityType.MONTHLY:
            return add_months(origin, period)
        return origin + timedelta(days=STEP_DAYS[self.type] * period)
