"""Installment schedule generation for promissory notes"""

from datetime import date, datetime
from typing import List, Optional, Sequence

from crediario.domain.exceptions import NoteValidationError
from crediario.domain.models import Installment
from crediario.utils.date_utils import add_months, is_past_due
from crediario.utils.identity import IdGenerator, UUIDGenerator


def generate_installment_schedule(
    amount_cents: int,
    installment_count: int,
    issue_date: date,
    ids: Optional[IdGenerator] = None,
) -> List[Installment]:
    """
    Split a note's amount into monthly installments.

    Requirements:
    - Equal installments numbered 1..N
    - Installment i is due i months after the issue date (day clamped to the
      end of shorter months, e.g. Jan 31 -> Feb 28)
    - Last installment absorbs the rounding remainder so the schedule sums to
      the note amount exactly

    Args:
        amount_cents: Note face value
        installment_count: Number of installments (N)
        issue_date: Note issue date
        ids: Id source for the installments

    Returns:
        List of unpaid Installment objects

    Example:
        R$ 100,00 in 3 → [33,33, 33,33, 33,34]
        10000 cents / 3 = 3333 base, remainder 1
        Last installment: 3333 + 1 = 3334
    """
    if amount_cents <= 0 or installment_count <= 0:
        return []

    ids = ids or UUIDGenerator()
    base_amount = amount_cents // installment_count
    remainder = amount_cents % installment_count

    installments = []
    for number in range(1, installment_count + 1):
        amount = base_amount + (remainder if number == installment_count else 0)
        installments.append(
            Installment(
                installment_id=ids.new_id(),
                number=number,
                amount_cents=amount,
                due_date=add_months(issue_date, number),
            )
        )

    return installments


def regenerate_schedule(
    existing: Sequence[Installment],
    amount_cents: int,
    installment_count: int,
    issue_date: date,
    ids: Optional[IdGenerator] = None,
    *,
    now: datetime,
) -> List[Installment]:
    """
    Rebuild a schedule after a note edit, carrying payments over by number.

    Installment N of the new schedule keeps the id, paid amount, payments and
    late flag of installment N of the old one. An installment that the carried
    amount settles for the first time is judged late against ``now``.
    Installments numbered above the new count must be unpaid, otherwise their
    payments would vanish.

    Raises:
        NoteValidationError: paid money would not fit the new schedule
    """
    previous = {inst.number: inst for inst in existing}
    for inst in existing:
        if inst.number > installment_count and inst.amount_paid_cents > 0:
            raise NoteValidationError(
                f"Installment {inst.number} already has payments and cannot be removed"
            )

    schedule = generate_installment_schedule(amount_cents, installment_count, issue_date, ids)
    rebuilt = []
    for inst in schedule:
        old = previous.get(inst.number)
        if old is None:
            rebuilt.append(inst)
            continue

        if old.amount_paid_cents > inst.amount_cents:
            raise NoteValidationError(
                f"Installment {inst.number} already has {old.amount_paid_cents} cents paid, "
                f"more than its new amount of {inst.amount_cents} cents"
            )
        paid = old.amount_paid_cents >= inst.amount_cents
        inst.installment_id = old.installment_id
        inst.amount_paid_cents = old.amount_paid_cents
        inst.payments = list(old.payments)
        inst.paid = paid
        if not paid:
            inst.paid_late = False
        elif old.paid:
            inst.paid_late = old.paid_late
        else:
            inst.paid_late = is_past_due(inst.due_date, now)
        rebuilt.append(inst)

    return rebuilt
