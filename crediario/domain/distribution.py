"""Spreading one payment across all of a customer's open notes"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import List, Optional, Sequence

from crediario.domain.exceptions import InvalidAmountError
from crediario.domain.invariants import ensure_consistent
from crediario.domain.models import DistributionResult, Note, Payment, PaymentMeta
from crediario.domain.payments import apply_payment, pay_note_directly
from crediario.domain.status import refresh_note
from crediario.utils.date_utils import is_past_due
from crediario.utils.identity import IdGenerator


@dataclass(frozen=True)
class Candidate:
    """One open debt: an unpaid installment, or a whole note without installments"""

    note_index: int
    installment_index: Optional[int]  # None for a note paid directly
    due_date: date
    outstanding_cents: int


def collect_candidates(notes: Sequence[Note]) -> List[Candidate]:
    """Flatten open debts in supply order (notes, then installments within each)"""
    candidates = []
    for note_index, note in enumerate(notes):
        if not note.installment:
            if note.amount_paid_cents < note.amount_cents:
                candidates.append(
                    Candidate(note_index, None, note.due_date, note.amount_cents - note.amount_paid_cents)
                )
            continue

        for inst_index, inst in enumerate(note.installments):
            if inst.amount_paid_cents < inst.amount_cents:
                candidates.append(
                    Candidate(note_index, inst_index, inst.due_date, inst.amount_cents - inst.amount_paid_cents)
                )
    return candidates


def prioritize(candidates: Sequence[Candidate], now: datetime) -> List[Candidate]:
    """
    Order debts for payment: every overdue item first, then the rest.

    Both groups run earliest due date first. An overdue item always precedes
    a not-yet-due one, however close the latter's due date. sorted() is
    stable, so ties keep supply order.
    """
    overdue = [c for c in candidates if is_past_due(c.due_date, now)]
    upcoming = [c for c in candidates if not is_past_due(c.due_date, now)]
    by_due_date = lambda c: c.due_date  # noqa: E731
    return sorted(overdue, key=by_due_date) + sorted(upcoming, key=by_due_date)


def distribute_payment(
    amount_cents: int,
    notes: Sequence[Note],
    meta: PaymentMeta,
    *,
    ids: Optional[IdGenerator] = None,
) -> DistributionResult:
    """
    Apply a single payment across several notes by priority.

    Guarantees:
    - applied + remainder == amount_cents; the remainder is returned unspent
    - no installment is paid above its amount
    - the returned note list holds every supplied note, in supplied order,
      with each touched note's total and status re-derived

    Raises:
        InvalidAmountError: amount_cents <= 0
        InconsistentStateError: a supplied note does not reconcile
    """
    if amount_cents <= 0:
        raise InvalidAmountError(f"Payment amount must be positive, got {amount_cents} cents")
    for note in notes:
        ensure_consistent(note)

    working = list(notes)
    remaining = amount_cents
    payments: List[Payment] = []

    for candidate in prioritize(collect_candidates(working), meta.paid_at):
        if remaining <= 0:
            break
        note = working[candidate.note_index]

        if candidate.installment_index is None:
            result = pay_note_directly(note, remaining, meta, ids=ids)
            working[candidate.note_index] = result.note
            payments.extend(result.payments)
            remaining = result.remainder_cents
            continue

        installments = list(note.installments)
        applied = apply_payment(
            installments[candidate.installment_index], remaining, meta, note_id=note.note_id, ids=ids
        )
        installments[candidate.installment_index] = applied.installment
        working[candidate.note_index] = refresh_note(
            replace(note, installments=installments, updated_at=meta.paid_at), meta.paid_at
        )
        payments.append(applied.payment)
        remaining -= applied.payment.amount_cents

    return DistributionResult(notes=working, payments=payments, remainder_cents=remaining)
