"""Editing and deleting recorded payments

Installment-level operations never touch the owning note; callers re-derive
the note with ``refresh_note`` afterwards so its total is recomputed from the
installments rather than patched.
"""

from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Tuple

from crediario.domain.exceptions import InvalidAmountError, PaymentNotFoundError
from crediario.domain.models import (
    Installment,
    Note,
    Payment,
    PaymentEdit,
    PaymentEditResult,
    PaymentMethod,
)
from crediario.domain.status import refresh_installment, refresh_note
from crediario.utils.date_utils import is_past_due
from crediario.utils.money import format_brl


def _payment_index(payments: List[Payment], payment_id: str) -> int:
    for index, payment in enumerate(payments):
        if payment.payment_id == payment_id:
            return index
    raise PaymentNotFoundError(f"Payment {payment_id} not found")


def _edit_description(payment: Payment, new_amount_cents: int, new_method: PaymentMethod) -> str:
    parts = [f"Amount changed from {format_brl(payment.amount_cents)} to {format_brl(new_amount_cents)}"]
    if new_method != payment.method:
        parts.append(f"method changed from {payment.method.value} to {new_method.value}")
    return "; ".join(parts)


def _edited_payment(
    payment: Payment,
    new_amount_cents: int,
    new_method: Optional[PaymentMethod],
    new_notes: Optional[str],
    now: datetime,
) -> Tuple[Payment, PaymentEdit]:
    if new_amount_cents < 0:
        raise InvalidAmountError(f"Payment amount cannot be negative, got {new_amount_cents} cents")

    method = new_method or payment.method
    entry = PaymentEdit(
        edited_at=now,
        description=_edit_description(payment, new_amount_cents, method),
        amount_before_cents=payment.amount_cents,
        amount_after_cents=new_amount_cents,
    )
    edited = replace(
        payment,
        amount_cents=new_amount_cents,
        method=method,
        notes=new_notes if new_notes is not None else payment.notes,
        edited=True,
        edit_history=[*payment.edit_history, entry],
    )
    return edited, entry


def _resettle(installment: Installment, amount_paid_cents: int, was_paid: bool, now: datetime) -> Installment:
    """Recompute paid flags after the paid amount changed outside the applier"""
    paid = amount_paid_cents >= installment.amount_cents
    if not paid:
        paid_late = False
    elif was_paid:
        paid_late = installment.paid_late
    else:
        paid_late = is_past_due(installment.due_date, now)

    updated = replace(installment, amount_paid_cents=amount_paid_cents, paid=paid, paid_late=paid_late)
    return refresh_installment(updated, now)


def edit_payment(
    installment: Installment,
    payment_id: str,
    new_amount_cents: int,
    new_method: Optional[PaymentMethod] = None,
    new_notes: Optional[str] = None,
    *,
    now: datetime,
) -> PaymentEditResult:
    """
    Change a payment recorded on an installment.

    The installment's paid amount moves by the difference (never below zero)
    and lateness is judged at ``now``, not at the original payment instant.
    ``None`` for method or notes keeps the current value.

    Raises:
        PaymentNotFoundError: no payment with that id on the installment
        InvalidAmountError: negative amount, or the edit would pay the
            installment above its amount
    """
    index = _payment_index(installment.payments, payment_id)
    payment = installment.payments[index]
    edited, entry = _edited_payment(payment, new_amount_cents, new_method, new_notes, now)

    delta = new_amount_cents - payment.amount_cents
    amount_paid = max(installment.amount_paid_cents + delta, 0)
    if amount_paid > installment.amount_cents:
        raise InvalidAmountError(
            f"Edit would pay installment {installment.number} above its amount "
            f"({amount_paid} > {installment.amount_cents} cents)"
        )

    payments = list(installment.payments)
    payments[index] = edited
    updated = _resettle(replace(installment, payments=payments), amount_paid, installment.paid, now)
    return PaymentEditResult(installment=updated, history_entry=entry)


def delete_payment(installment: Installment, payment_id: str, *, now: datetime) -> Installment:
    """
    Remove a payment from an installment and reverse its amount.

    Raises:
        PaymentNotFoundError: no payment with that id on the installment
    """
    index = _payment_index(installment.payments, payment_id)
    removed = installment.payments[index]

    payments = installment.payments[:index] + installment.payments[index + 1:]
    amount_paid = max(installment.amount_paid_cents - removed.amount_cents, 0)
    return _resettle(replace(installment, payments=payments), amount_paid, installment.paid, now)


def edit_direct_payment(
    note: Note,
    payment_id: str,
    new_amount_cents: int,
    new_method: Optional[PaymentMethod] = None,
    new_notes: Optional[str] = None,
    *,
    now: datetime,
) -> Tuple[Note, PaymentEdit]:
    """Same contract as edit_payment, for a note paid without installments"""
    index = _payment_index(note.payments, payment_id)
    edited, entry = _edited_payment(note.payments[index], new_amount_cents, new_method, new_notes, now)

    payments = list(note.payments)
    payments[index] = edited
    if sum(p.amount_cents for p in payments) > note.amount_cents:
        raise InvalidAmountError(f"Edit would pay note {note.note_id} above its amount")

    return refresh_note(replace(note, payments=payments, updated_at=now), now), entry


def delete_direct_payment(note: Note, payment_id: str, *, now: datetime) -> Note:
    index = _payment_index(note.payments, payment_id)
    payments = note.payments[:index] + note.payments[index + 1:]
    return refresh_note(replace(note, payments=payments, updated_at=now), now)
