"""Risk classification engine - derives the collection status of a contract"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from lending_engine.domain.calendar import BusinessCalendar
from lending_engine.domain.exceptions import ConfigurationError
from lending_engine.domain.installments import generate_schedule
from lending_engine.domain.modality import PaymentModality
from lending_engine.domain.models import (
    Arrear,
    Contract,
    ContractPendingStatus,
    InstallmentAllocation,
    Parameters,
    Reconciliation,
)
from lending_engine.domain.reconciliation import reconcile
from lending_engine.utils.money import percent_of

GREEN = "green"
YELLOW = "yellow"
RED = "red"

ICONS = {
    GREEN: "check",
    YELLOW: "alert-triangle",
    RED: "alert-octagon",
}


@dataclass
class InstallmentBuckets:
    """Installments partitioned relative to the evaluation date"""

    remaining: List[InstallmentAllocation]
    up_to_date: List[InstallmentAllocation]
    incomplete: List[InstallmentAllocation]
    late: List[InstallmentAllocation]

    @property
    def due(self) -> List[InstallmentAllocation]:
        return self.up_to_date + self.incomplete + self.late

    @property
    def unresolved(self) -> List[InstallmentAllocation]:
        return sorted(self.incomplete + self.late, key=lambda a: a.installment.due_date)


def partition_installments(allocations: List[InstallmentAllocation], today: date) -> InstallmentBuckets:
    """
    Split installments into remaining / up-to-date / incomplete / late.

    Anything due after today is remaining regardless of prepayments; installments due
    today count as due.
    """
    buckets = InstallmentBuckets(remaining=[], up_to_date=[], incomplete=[], late=[])
    for allocation in allocations:
        if allocation.installment.due_date > today:
            buckets.remaining.append(allocation)
        elif allocation.is_complete:
            buckets.up_to_date.append(allocation)
        elif allocation.paid_cents > 0:
            buckets.incomplete.append(allocation)
        else:
            buckets.late.append(allocation)
    return buckets


def find_arrear(arrears: Iterable[Arrear], year: int, month: int) -> Optional[Arrear]:
    """Arrear row effective for the given month, if any"""
    for arrear in arrears:
        if arrear.year == year and arrear.month == month:
            return arrear
    return None


def calculate_late_fee(
    buckets: InstallmentBuckets,
    parameters: Parameters,
    arrears: Iterable[Arrear],
    days_expired: int,
) -> int:
    """
    Late surcharge on unresolved installments.

    Rate: the arrear for the month the earliest unresolved installment fell due; no
    arrear for that month means no surcharge. Applied once to the total late or
    incomplete amount (rounded half-up a single time) after the grace period, never
    compounded by day or month.
    """
    unresolved = buckets.unresolved
    if not unresolved or days_expired <= parameters.late_fee_grace_days:
        return 0

    first_due = unresolved[0].installment.due_date
    arrear = find_arrear(arrears, first_due.year, first_due.month)
    if arrear is None or arrear.percent <= 0:
        return 0

    return percent_of(sum(a.outstanding_cents for a in unresolved), arrear.percent)


def determine_color(late_or_incomplete: int, yellow_threshold: int, red_threshold: int) -> str:
    """
    Map the count of late/incomplete installments to a traffic-light color.

    Bands (per modality type, configured per company):
    - >= red threshold:    red (route supervisor escalation)
    - >= yellow threshold: yellow (collector follow-up)
    - otherwise:           green
    """
    if late_or_incomplete >= red_threshold:
        return RED
    elif late_or_incomplete >= yellow_threshold:
        return YELLOW
    else:
        return GREEN


def classify(
    reconciliation: Reconciliation,
    parameters: Parameters,
    arrears: Iterable[Arrear],
    today: date,
    modality: Optional[PaymentModality],
) -> ContractPendingStatus:
    """
    Derive the pending status from a reconciliation.

    Pure function: parameters and arrears are passed in, today is explicit, so the same
    inputs always produce an equal status.
    """
    if modality is None:
        raise ConfigurationError("Cannot classify a contract without payment modality")
    if not reconciliation.allocations:
        raise ConfigurationError("Cannot classify a contract with an empty schedule")

    buckets = partition_installments(reconciliation.allocations, today)
    unresolved = buckets.unresolved

    amount_late_or_incomplete = sum(a.outstanding_cents for a in unresolved)
    pending_amount = sum(a.outstanding_cents for a in buckets.due)

    days_expired = (today - unresolved[0].installment.due_date).days if unresolved else 0

    # Ahead only when nothing due is left unresolved
    days_ahead = 0
    if not unresolved:
        prepaid = [a for a in buckets.remaining if a.is_complete]
        if prepaid:
            latest = max(a.installment.due_date for a in prepaid)
            days_ahead = (latest - today).days

    late_fee = calculate_late_fee(buckets, parameters, arrears, days_expired)

    yellow, red = parameters.thresholds_for(modality.type)
    color = determine_color(len(buckets.late) + len(buckets.incomplete), yellow, red)

    today_incomplete = any(a.installment.due_date == today for a in buckets.incomplete)
    days_pending = sum(1 for a in reconciliation.allocations if a.paid_cents == 0)

    return ContractPendingStatus(
        payed_amount_cents=reconciliation.payed_cents,
        pending_amount_cents=pending_amount + late_fee,
        not_validated_amount_cents=reconciliation.not_validated_cents,
        amount_late_or_incomplete_cents=amount_late_or_incomplete,
        balance_cents=reconciliation.balance_cents,
        late_fee_cents=late_fee,
        payments_late=len(buckets.late),
        payments_up_to_date=len(buckets.up_to_date),
        payments_incomplete=len(buckets.incomplete),
        payments_remaining=len(buckets.remaining),
        days_expired=days_expired,
        days_ahead=days_ahead,
        today_incomplete=today_incomplete,
        days_pending=days_pending,
        is_outdated=days_expired > parameters.default_max_client_debt_days,
        payed_amount_problem=reconciliation.overpaid_cents > 0,
        last_payment_date=reconciliation.last_payment_date,
        icon=ICONS[color],
        color=color,
    )


def compute_pending_status(
    contract: Contract,
    calendar: BusinessCalendar,
    parameters: Parameters,
    arrears: Iterable[Arrear],
    today: date,
) -> ContractPendingStatus:
    """
    Main entry point: schedule, reconcile and classify one contract.

    Raises:
        ConfigurationError: missing modality or unusable calendar
        DataIntegrityError: movements that contradict the contract
    """
    if contract.modality is None:
        raise ConfigurationError(f"Contract {contract.id} has no payment modality")

    schedule = generate_schedule(contract, contract.modality, calendar)
    reconciliation = reconcile(schedule, contract.collections, contract.start_date)
    return classify(reconciliation, parameters, list(arrears), today, contract.modality)
