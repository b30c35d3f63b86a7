"""Ledger reconciliation - applies recorded movements to the installment schedule"""

from datetime import date
from typing import Iterable, List

from lending_engine.domain.exceptions import DataIntegrityError
from lending_engine.domain.models import Installment, InstallmentAllocation, Movement, Reconciliation


def collections_in_order(movements: Iterable[Movement], origin: date) -> List[Movement]:
    """
    Incoming movements sorted by date, validated against the contract origin.

    Outgoing entries (the loan disbursement) never pay installments and are dropped.
    The sort is stable so same-day entries keep their recorded order.
    """
    incoming = [m for m in movements if m.direction == "in"]

    for movement in incoming:
        if movement.amount_cents < 0:
            raise DataIntegrityError(f"Movement {movement.id} has negative amount {movement.amount_cents}")
        if movement.movement_date < origin:
            raise DataIntegrityError(
                f"Movement {movement.id} dated {movement.movement_date.isoformat()} "
                f"predates contract origin {origin.isoformat()}"
            )

    return sorted(incoming, key=lambda m: m.movement_date)


def reconcile(schedule: List[Installment], movements: Iterable[Movement], origin: date) -> Reconciliation:
    """
    Allocate validated funds to installments oldest-due first.

    Requirements:
    - Strict FIFO: an installment is paid in full before the next one receives anything
    - Funds awaiting validation are only tracked, they never reduce a balance
    - Validated funds beyond the total obligation are discarded (no carry-over credit)

    Example:
        movements [50, 30] against installments [40, 40, 40]
        -> paid [40, 40, 0]; the second installment gets 10 from the first movement
           and 30 from the second
    """
    allocations = [InstallmentAllocation(installment=inst) for inst in sorted(schedule, key=lambda i: i.due_date)]
    ordered = collections_in_order(movements, origin)

    not_validated = 0
    overpaid = 0
    cursor = 0  # First allocation that still has an outstanding balance

    for movement in ordered:
        if not movement.validated:
            not_validated += movement.amount_cents
            continue

        remaining = movement.amount_cents
        while remaining > 0 and cursor < len(allocations):
            allocation = allocations[cursor]
            applied = min(remaining, allocation.outstanding_cents)
            allocation.paid_cents += applied
            remaining -= applied
            if allocation.is_complete:
                cursor += 1

        overpaid += remaining

    return Reconciliation(
        allocations=allocations,
        payed_cents=sum(a.paid_cents for a in allocations),
        not_validated_cents=not_validated,
        overpaid_cents=overpaid,
        last_payment_date=ordered[-1].movement_date if ordered else None,
    )
