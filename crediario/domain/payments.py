"""Applying payments to installments and notes

Every path bottoms out in ``apply_payment`` (one installment) or
``pay_note_directly`` (a note without installments). Inputs are never mutated;
each function returns new snapshots for the caller to persist.
"""

from dataclasses import replace
from typing import List, Optional

from crediario.domain.exceptions import (
    AlreadySettledError,
    InvalidAmountError,
    NoteValidationError,
    NotInstallmentBasedError,
    OverpaymentError,
)
from crediario.domain.invariants import ensure_consistent
from crediario.domain.models import (
    Installment,
    InstallmentPaymentResult,
    Note,
    NotePaymentResult,
    Payment,
    PaymentMeta,
)
from crediario.domain.status import refresh_installment, refresh_note
from crediario.utils.date_utils import is_past_due
from crediario.utils.identity import IdGenerator, UUIDGenerator
from crediario.utils.money import format_brl

OVERPAYMENT_REJECT = "reject"
OVERPAYMENT_CAP = "cap"

_default_ids = UUIDGenerator()


def _require_positive(amount_cents: int) -> None:
    if amount_cents <= 0:
        raise InvalidAmountError(f"Payment amount must be positive, got {amount_cents} cents")


def _balance_summary(label: str, before: int, after: int, total: int) -> str:
    return (
        f"{label} | Before: {format_brl(before)} -> After: {format_brl(after)}"
        f" | Remaining: {format_brl(total - after)}"
    )


def apply_payment(
    installment: Installment,
    amount_cents: int,
    meta: PaymentMeta,
    *,
    note_id: Optional[str] = None,
    ids: Optional[IdGenerator] = None,
) -> InstallmentPaymentResult:
    """
    Apply an amount to a single installment.

    The applied amount is capped at what the installment still owes; anything
    above that is silently ignored, so callers wanting to reject or redirect
    an excess must check before calling.

    Raises:
        InvalidAmountError: amount_cents <= 0
        AlreadySettledError: installment is already paid or has nothing left to pay
    """
    _require_positive(amount_cents)

    before = installment.amount_paid_cents
    outstanding = installment.amount_cents - before
    if installment.paid or outstanding <= 0:
        raise AlreadySettledError(f"Installment {installment.number} is already paid")

    applied = min(amount_cents, outstanding)
    after = before + applied

    payment = Payment(
        payment_id=(ids or _default_ids).new_id(),
        amount_cents=applied,
        method=meta.method,
        paid_at=meta.paid_at,
        note_id=note_id,
        installment_id=installment.installment_id,
        notes=meta.notes,
        description=_balance_summary(
            f"Installment {installment.number}", before, after, installment.amount_cents
        ),
    )

    paid = after >= installment.amount_cents
    paid_late = paid and is_past_due(installment.due_date, meta.paid_at)

    updated = replace(
        installment,
        amount_paid_cents=after,
        paid=paid,
        paid_late=paid_late,
        payments=[*installment.payments, payment],
    )
    return InstallmentPaymentResult(installment=refresh_installment(updated, meta.paid_at), payment=payment)


def pay_note(
    note: Note,
    amount_cents: int,
    meta: PaymentMeta,
    *,
    ids: Optional[IdGenerator] = None,
) -> NotePaymentResult:
    """
    Cascade an amount across a note's unpaid installments, earliest due first.

    Whatever is left once every installment is paid comes back as
    ``remainder_cents``; it is never applied elsewhere here.

    Raises:
        InvalidAmountError: amount_cents <= 0
        NotInstallmentBasedError: note is paid directly, use pay_note_directly
        InconsistentStateError: snapshot totals do not reconcile
    """
    _require_positive(amount_cents)
    if not note.installment:
        raise NotInstallmentBasedError(f"Note {note.note_id} is not split into installments")
    ensure_consistent(note)

    installments = list(note.installments)
    # sorted() is stable: equal due dates keep installment order
    unpaid = sorted(
        (i for i, inst in enumerate(installments) if inst.amount_paid_cents < inst.amount_cents),
        key=lambda i: installments[i].due_date,
    )

    remaining = amount_cents
    payments: List[Payment] = []
    for index in unpaid:
        if remaining <= 0:
            break
        result = apply_payment(installments[index], remaining, meta, note_id=note.note_id, ids=ids)
        installments[index] = result.installment
        payments.append(result.payment)
        remaining -= result.payment.amount_cents

    updated = replace(note, installments=installments, updated_at=meta.paid_at)
    return NotePaymentResult(note=refresh_note(updated, meta.paid_at), payments=payments, remainder_cents=remaining)


def pay_note_directly(
    note: Note,
    amount_cents: int,
    meta: PaymentMeta,
    *,
    ids: Optional[IdGenerator] = None,
) -> NotePaymentResult:
    """Record a single capped payment against a note without installments"""
    _require_positive(amount_cents)
    if note.installment:
        raise NoteValidationError(f"Note {note.note_id} is split into installments; pay its installments")
    ensure_consistent(note)

    before = note.amount_paid_cents
    outstanding = note.amount_cents - before
    if outstanding <= 0:
        raise AlreadySettledError(f"Note {note.note_id} is already paid")

    applied = min(amount_cents, outstanding)
    payment = Payment(
        payment_id=(ids or _default_ids).new_id(),
        amount_cents=applied,
        method=meta.method,
        paid_at=meta.paid_at,
        note_id=note.note_id,
        notes=meta.notes,
        description=_balance_summary("Note", before, before + applied, note.amount_cents),
    )

    updated = replace(note, payments=[*note.payments, payment], updated_at=meta.paid_at)
    return NotePaymentResult(
        note=refresh_note(updated, meta.paid_at),
        payments=[payment],
        remainder_cents=amount_cents - applied,
    )


def settle_note(
    note: Note,
    amount_cents: int,
    meta: PaymentMeta,
    *,
    ids: Optional[IdGenerator] = None,
) -> NotePaymentResult:
    """Pay a note through whichever path its shape calls for"""
    if note.installment:
        return pay_note(note, amount_cents, meta, ids=ids)
    return pay_note_directly(note, amount_cents, meta, ids=ids)


def enforce_overpayment_policy(amount_cents: int, due_cents: int, policy: str) -> None:
    """
    Reject amounts above what is due when the policy says so.

    With OVERPAYMENT_CAP the amount passes through and the core caps it.
    Nothing due at all is left for the payment functions to report as
    already settled.
    """
    if policy == OVERPAYMENT_REJECT and 0 < due_cents < amount_cents:
        raise OverpaymentError(requested_cents=amount_cents, due_cents=due_cents)
