"""POST/PUT/DELETE /v1/payments - applying, editing and deleting payments"""

import logging
import time
from dataclasses import replace
from typing import List, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from crediario.api.dependencies import (
    CustomerLocks,
    get_clock,
    get_customer_locks,
    get_id_generator,
    get_note_gateway,
    get_request_id,
)
from crediario.api.errors import to_http_exception
from crediario.api.v1.schemas import (
    NoteSchema,
    PaymentChangeResponse,
    PaymentEditSchema,
    PaymentRequest,
    PaymentResponse,
    PaymentSchema,
    PaymentUpdateRequest,
)
from crediario.config import settings
from crediario.domain.distribution import distribute_payment
from crediario.domain.exceptions import (
    DomainException,
    InstallmentNotFoundError,
    NoteNotFoundError,
    PaymentNotFoundError,
)
from crediario.domain.history import (
    delete_direct_payment,
    delete_payment,
    edit_direct_payment,
    edit_payment,
)
from crediario.domain.invariants import ensure_consistent
from crediario.domain.models import Note, Payment, PaymentMeta
from crediario.domain.payments import apply_payment, enforce_overpayment_policy, settle_note
from crediario.domain.snapshots import find_installment, find_note, locate_payment, with_installment, with_note
from crediario.domain.status import refresh_note
from crediario.infrastructure.database.repositories import CustomerRepository, NoteRepository
from crediario.infrastructure.database.session import get_db
from crediario.infrastructure.gateway import FallbackNoteGateway
from crediario.infrastructure.observability.logging import log_payment, log_payment_change
from crediario.infrastructure.observability.metrics import record_payment, record_payment_outcome
from crediario.utils.identity import Clock, IdGenerator

router = APIRouter()


def _operation_for(body: PaymentRequest) -> str:
    if body.installment_id:
        return "installment"
    if body.note_id:
        return "note"
    return "distribution"


def _owner_of(db: Session, body: PaymentRequest) -> str:
    """Customer whose snapshot the payment touches"""
    if body.customer_id:
        CustomerRepository(db).get(body.customer_id)
        return body.customer_id

    repo = NoteRepository(db)
    if body.installment_id:
        customer_id = repo.find_customer_id(installment_id=body.installment_id)
        if customer_id is None:
            raise InstallmentNotFoundError(f"Installment {body.installment_id} not found")
        return customer_id

    customer_id = repo.find_customer_id(note_id=body.note_id)
    if customer_id is None:
        raise NoteNotFoundError(f"Note {body.note_id} not found")
    return customer_id


def _apply(
    body: PaymentRequest,
    operation: str,
    snapshot: List[Note],
    meta: PaymentMeta,
    ids: IdGenerator,
) -> Tuple[List[Note], List[Payment], int]:
    """Run the core operation for the request's target: (touched notes, payments, remainder)"""
    if operation == "installment":
        note, installment = find_installment(snapshot, body.installment_id)
        enforce_overpayment_policy(body.amount_cents, installment.remaining_cents, settings.overpayment_policy)
        ensure_consistent(note)
        result = apply_payment(installment, body.amount_cents, meta, note_id=note.note_id, ids=ids)
        updated = replace(with_installment(note, result.installment), updated_at=meta.paid_at)
        remainder = body.amount_cents - result.payment.amount_cents
        return [refresh_note(updated, meta.paid_at)], [result.payment], remainder

    if operation == "note":
        note = find_note(snapshot, body.note_id)
        enforce_overpayment_policy(body.amount_cents, note.remaining_cents, settings.overpayment_policy)
        result = settle_note(note, body.amount_cents, meta, ids=ids)
        return [result.note], result.payments, result.remainder_cents

    # Customer-wide distribution never rejects an excess; it hands it back
    result = distribute_payment(body.amount_cents, snapshot, meta, ids=ids)
    return result.updated_notes, result.payments, result.remainder_cents


@router.post("/payments", response_model=PaymentResponse)
def create_payment(
    body: PaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    gateway: FallbackNoteGateway = Depends(get_note_gateway),
    clock: Clock = Depends(get_clock),
    ids: IdGenerator = Depends(get_id_generator),
    locks: CustomerLocks = Depends(get_customer_locks),
):
    """
    Apply a payment to an installment, a note, or a whole customer.

    Flow:
    1. Resolve the customer owning the target
    2. Lock the customer and load their note snapshot
    3. Apply the payment (single installment / note cascade / distribution)
    4. Save the updated snapshot and commit
    5. Return payments created and any unspent remainder
    """
    start_time = time.time()
    request_id = get_request_id(request)
    operation = _operation_for(body)

    try:
        # 1. Resolve owner
        customer_id = _owner_of(db, body)

        with locks.hold(customer_id):
            # 2. Load snapshot
            snapshot = gateway.load_notes_for_customer(customer_id).value

            # 3. Apply
            meta = PaymentMeta(method=body.method, paid_at=clock.now(), notes=body.notes)
            touched, payments, remainder = _apply(body, operation, snapshot, meta, ids)

            # 4. Persist
            for note in touched:
                snapshot = with_note(snapshot, note)
            store = gateway.save_notes(customer_id, snapshot).source
            db.commit()

        applied = sum(p.amount_cents for p in payments)
        duration_ms = (time.time() - start_time) * 1000
        record_payment(operation, applied, remainder)
        log_payment(
            request_id,
            customer_id,
            operation,
            body.amount_cents,
            applied,
            remainder,
            [p.payment_id for p in payments],
            store,
            duration_ms,
            target_id=body.installment_id or body.note_id or body.customer_id,
        )

        return PaymentResponse(
            operation=operation,
            requested_cents=body.amount_cents,
            applied_cents=applied,
            remainder_cents=remainder,
            payments=[PaymentSchema.model_validate(p) for p in payments],
            notes=[NoteSchema.from_domain(n) for n in touched],
            store=store,
        )

    except DomainException as e:
        db.rollback()
        record_payment_outcome(operation, "rejected")
        logging.warning(f"Payment rejected: {e}", extra={"request_id": request_id, "operation": operation})
        raise to_http_exception(e)

    except Exception as e:
        db.rollback()
        record_payment_outcome(operation, "error")
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


def _payment_owner(db: Session, payment_id: str) -> str:
    customer_id = NoteRepository(db).find_customer_id(payment_id=payment_id)
    if customer_id is None:
        raise PaymentNotFoundError(f"Payment {payment_id} not found")
    return customer_id


@router.put("/payments/{payment_id}", response_model=PaymentChangeResponse)
def update_payment(
    payment_id: str,
    body: PaymentUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
    gateway: FallbackNoteGateway = Depends(get_note_gateway),
    clock: Clock = Depends(get_clock),
    locks: CustomerLocks = Depends(get_customer_locks),
):
    """Change a recorded payment's amount, method or notes, keeping an edit trail"""
    request_id = get_request_id(request)

    try:
        customer_id = _payment_owner(db, payment_id)

        with locks.hold(customer_id):
            snapshot = gateway.load_notes_for_customer(customer_id).value
            note, installment, payment = locate_payment(snapshot, payment_id)
            now = clock.now()

            if installment is None:
                updated, entry = edit_direct_payment(
                    note, payment_id, body.amount_cents, body.method, body.notes, now=now
                )
            else:
                result = edit_payment(installment, payment_id, body.amount_cents, body.method, body.notes, now=now)
                entry = result.history_entry
                # note total is re-derived from its installments, never patched
                updated = refresh_note(replace(with_installment(note, result.installment), updated_at=now), now)

            store = gateway.save_notes(customer_id, with_note(snapshot, updated)).source
            db.commit()

        record_payment_outcome("edit", "ok")
        log_payment_change(request_id, customer_id, "edited", payment_id, payment.amount_cents, body.amount_cents)
        return PaymentChangeResponse(
            note=NoteSchema.from_domain(updated),
            history_entry=PaymentEditSchema.model_validate(entry),
            store=store,
        )

    except DomainException as e:
        db.rollback()
        record_payment_outcome("edit", "rejected")
        logging.warning(f"Payment edit rejected: {e}", extra={"request_id": request_id, "payment_id": payment_id})
        raise to_http_exception(e)

    except Exception as e:
        db.rollback()
        record_payment_outcome("edit", "error")
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/payments/{payment_id}", response_model=PaymentChangeResponse)
def remove_payment(
    payment_id: str,
    request: Request,
    db: Session = Depends(get_db),
    gateway: FallbackNoteGateway = Depends(get_note_gateway),
    clock: Clock = Depends(get_clock),
    locks: CustomerLocks = Depends(get_customer_locks),
):
    """Delete a recorded payment and reverse its amount"""
    request_id = get_request_id(request)

    try:
        customer_id = _payment_owner(db, payment_id)

        with locks.hold(customer_id):
            snapshot = gateway.load_notes_for_customer(customer_id).value
            note, installment, payment = locate_payment(snapshot, payment_id)
            now = clock.now()

            if installment is None:
                updated = delete_direct_payment(note, payment_id, now=now)
            else:
                remaining = delete_payment(installment, payment_id, now=now)
                updated = refresh_note(replace(with_installment(note, remaining), updated_at=now), now)

            store = gateway.save_notes(customer_id, with_note(snapshot, updated)).source
            db.commit()

        record_payment_outcome("delete", "ok")
        log_payment_change(request_id, customer_id, "deleted", payment_id, payment.amount_cents, 0)
        return PaymentChangeResponse(note=NoteSchema.from_domain(updated), store=store)

    except DomainException as e:
        db.rollback()
        record_payment_outcome("delete", "rejected")
        logging.warning(f"Payment deletion rejected: {e}", extra={"request_id": request_id, "payment_id": payment_id})
        raise to_http_exception(e)

    except Exception as e:
        db.rollback()
        record_payment_outcome("delete", "error")
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
