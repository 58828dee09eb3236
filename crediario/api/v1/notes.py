"""Note registration and edit endpoints"""

import logging

from fastapi import APIRouter, Depends, Request
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
from crediario.api.v1.schemas import NoteCreateRequest, NoteSchema, NoteUpdateRequest
from crediario.config import settings
from crediario.domain.exceptions import DomainException, NoteNotFoundError
from crediario.domain.notes import create_note, edit_note
from crediario.domain.snapshots import find_note, with_note
from crediario.infrastructure.database.repositories import CustomerRepository, NoteRepository
from crediario.infrastructure.database.session import get_db
from crediario.infrastructure.gateway import FallbackNoteGateway
from crediario.utils.identity import Clock, IdGenerator

router = APIRouter()


@router.post("/customers/{customer_id}/notes", response_model=NoteSchema, status_code=201)
def issue_note(
    customer_id: str,
    body: NoteCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    gateway: FallbackNoteGateway = Depends(get_note_gateway),
    clock: Clock = Depends(get_clock),
    ids: IdGenerator = Depends(get_id_generator),
    locks: CustomerLocks = Depends(get_customer_locks),
):
    """
    Issue a note to a customer.

    Installment-based notes get their full monthly schedule immediately.
    Customers marked not eligible need ``manager_override``.
    """
    try:
        customer = CustomerRepository(db).get(customer_id)
        installment_count = body.installment_count
        if body.installment and installment_count is None:
            installment_count = settings.default_installments

        with locks.hold(customer_id):
            notes = gateway.load_notes_for_customer(customer_id).value
            note = create_note(
                customer,
                body.amount_cents,
                body.issue_date,
                body.due_date,
                body.installment,
                installment_count,
                body.remarks,
                now=clock.now(),
                ids=ids,
                manager_override=body.manager_override,
                min_installments=settings.min_installments,
                max_installments=settings.max_installments,
            )
            gateway.save_notes(customer_id, [*notes, note])
            db.commit()

        logging.info(
            "Note issued",
            extra={
                "request_id": get_request_id(request),
                "customer_id": customer_id,
                "note_id": note.note_id,
                "amount_cents": note.amount_cents,
                "installment_count": note.installment_count,
                "manager_override": body.manager_override,
            },
        )
        return NoteSchema.from_domain(note)

    except DomainException as e:
        db.rollback()
        logging.warning(f"Note rejected: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)


@router.put("/notes/{note_id}", response_model=NoteSchema)
def update_note(
    note_id: str,
    body: NoteUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
    gateway: FallbackNoteGateway = Depends(get_note_gateway),
    clock: Clock = Depends(get_clock),
    ids: IdGenerator = Depends(get_id_generator),
    locks: CustomerLocks = Depends(get_customer_locks),
):
    """Change a note's terms; its schedule is regenerated keeping paid amounts"""
    try:
        customer_id = NoteRepository(db).find_customer_id(note_id=note_id)
        if customer_id is None:
            raise NoteNotFoundError(f"Note {note_id} not found")

        with locks.hold(customer_id):
            notes = gateway.load_notes_for_customer(customer_id).value
            updated = edit_note(
                find_note(notes, note_id),
                body.amount_cents,
                body.issue_date,
                body.due_date,
                body.installment,
                body.installment_count,
                body.remarks,
                now=clock.now(),
                ids=ids,
                min_installments=settings.min_installments,
                max_installments=settings.max_installments,
            )
            gateway.save_notes(customer_id, with_note(notes, updated))
            db.commit()

        return NoteSchema.from_domain(updated)

    except DomainException as e:
        db.rollback()
        logging.warning(f"Note edit rejected: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)
