"""Reconciliation checks run on snapshots before they are mutated"""

import logging

from crediario.domain.exceptions import InconsistentStateError
from crediario.domain.models import Note

logger = logging.getLogger(__name__)


def ensure_consistent(note: Note) -> None:
    """
    Verify the paid totals of a note agree with its parts.

    Raises:
        InconsistentStateError: an installment is paid above its amount, or the
            note total differs from the sum of its installments/payments
    """
    problem = _find_problem(note)
    if problem is None:
        return

    logger.error(
        "Inconsistent note snapshot",
        extra={"note_id": note.note_id, "customer_id": note.customer_id, "problem": problem},
    )
    raise InconsistentStateError(f"Note {note.note_id}: {problem}")


def _find_problem(note: Note) -> str | None:
    if note.amount_paid_cents < 0:
        return "negative paid total"

    if not note.installment:
        expected = sum(p.amount_cents for p in note.payments)
        if note.amount_paid_cents != expected:
            return f"paid total {note.amount_paid_cents} != sum of payments {expected}"
        if note.amount_paid_cents > note.amount_cents:
            return "paid total exceeds note amount"
        return None

    for inst in note.installments:
        if inst.amount_paid_cents > inst.amount_cents:
            return f"installment {inst.number} paid above its amount"
        if inst.amount_paid_cents < 0:
            return f"installment {inst.number} has a negative paid amount"

    expected = sum(inst.amount_paid_cents for inst in note.installments)
    if note.amount_paid_cents != expected:
        return f"paid total {note.amount_paid_cents} != sum of installments {expected}"
    return None
