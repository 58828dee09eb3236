"""Derived status of installments and notes

Stored ``status`` fields are caches. Every mutation in the domain layer goes
through ``refresh_installment`` / ``refresh_note`` so the cache always equals a
fresh resolve at the instant of the mutation.
"""

from dataclasses import replace
from datetime import datetime

from crediario.domain.models import Installment, Note, Status
from crediario.utils.date_utils import is_past_due


def resolve_installment_status(installment: Installment, now: datetime) -> Status:
    if installment.paid:
        return Status.PAID_LATE if installment.paid_late else Status.PAID
    return Status.OVERDUE if is_past_due(installment.due_date, now) else Status.PENDING


def resolve_note_status(note: Note, now: datetime) -> Status:
    if not note.installment:
        fully_paid = note.amount_paid_cents >= note.amount_cents
        past_due = is_past_due(note.due_date, now)
        if fully_paid:
            return Status.PAID_LATE if past_due else Status.PAID
        return Status.OVERDUE if past_due else Status.PENDING

    installments = note.installments
    if all(inst.paid for inst in installments):
        if any(inst.paid_late for inst in installments):
            return Status.PAID_LATE
        return Status.PAID

    if any(not inst.paid and is_past_due(inst.due_date, now) for inst in installments):
        return Status.OVERDUE
    return Status.PENDING


def refresh_installment(installment: Installment, now: datetime) -> Installment:
    return replace(installment, status=resolve_installment_status(installment, now))


def refresh_note(note: Note, now: datetime) -> Note:
    """Re-derive a note's paid total from its parts, then every status"""
    if note.installment:
        installments = [refresh_installment(inst, now) for inst in note.installments]
        amount_paid = sum(inst.amount_paid_cents for inst in installments)
    else:
        installments = list(note.installments)
        amount_paid = sum(p.amount_cents for p in note.payments)

    refreshed = replace(note, installments=installments, amount_paid_cents=amount_paid)
    return replace(refreshed, status=resolve_note_status(refreshed, now))
