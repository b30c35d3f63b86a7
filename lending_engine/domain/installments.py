"""Installment schedule generation for contract collection"""

from datetime import date, timedelta
from typing import List

from lending_engine.domain.calendar import BusinessCalendar
from lending_engine.domain.exceptions import ConfigurationError
from lending_engine.domain.modality import PaymentModality
from lending_engine.domain.models import Contract, Installment


def split_amount(total_cents: int, count: int) -> List[int]:
    """
    Split an amount into equal parts, the last part absorbing the remainder.

    Example:
        1003 cents / 4 -> [250, 250, 250, 253]
    """
    base_amount = total_cents // count
    remainder = total_cents % count
    return [base_amount + (remainder if i == count - 1 else 0) for i in range(count)]


def generate_due_dates(origin: date, modality: PaymentModality, calendar: BusinessCalendar) -> List[date]:
    """
    Due dates for every period of the modality, counted from the origin.

    Requirements:
    - Period k is anchored at origin + k steps (1 day, 7 days, 14 days or k months)
    - Due dates are strictly increasing; a roll never lands on an earlier due date
    - Non-payable dates roll forward to the next payable date unless the modality
      collects on off days
    """
    due_dates: List[date] = []
    for period in range(1, modality.period_count + 1):
        candidate = modality.anchor_date(origin, period)

        # A previous roll may already have consumed this anchor
        if due_dates and candidate <= due_dates[-1]:
            candidate = due_dates[-1] + timedelta(days=1)

        if not modality.off_days:
            candidate = calendar.next_payable(candidate)

        due_dates.append(candidate)

    return due_dates


def generate_schedule(
    contract: Contract,
    modality: PaymentModality,
    calendar: BusinessCalendar,
) -> List[Installment]:
    """
    Generate the expected installments of a contract.

    Requirements:
    - One installment per modality period
    - Total obligation (principal + modality surcharge) split evenly
    - Last installment absorbs rounding remainder so the sum is exact
    - Deterministic: identical inputs always give identical dates

    Returns:
        Installments ordered by due date
    """
    if modality is None:
        raise ConfigurationError(f"Contract {contract.id} has no payment modality")

    total_cents = contract.total_obligation_cents
    if total_cents <= 0:
        raise ConfigurationError(f"Contract {contract.id} has no obligation to schedule")

    due_dates = generate_due_dates(contract.start_date, modality, calendar)
    amounts = split_amount(total_cents, len(due_dates))

    return [
        Installment(number=i + 1, due_date=due_date, amount_cents=amount)
        for i, (due_date, amount) in enumerate(zip(due_dates, amounts))
    ]
