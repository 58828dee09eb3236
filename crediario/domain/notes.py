"""Registering and editing promissory notes"""

from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from crediario.domain.exceptions import CustomerNotEligibleError, NoteValidationError
from crediario.domain.installments import generate_installment_schedule, regenerate_schedule
from crediario.domain.models import Customer, Eligibility, Note
from crediario.domain.status import refresh_note
from crediario.utils.identity import IdGenerator, UUIDGenerator


def validate_note_terms(
    amount_cents: int,
    issue_date: date,
    due_date: date,
    installment: bool,
    installment_count: Optional[int],
    min_installments: int,
    max_installments: int,
) -> None:
    if amount_cents <= 0:
        raise NoteValidationError("Note amount must be positive")
    if due_date <= issue_date:
        raise NoteValidationError("Due date must be after the issue date")
    if installment:
        if installment_count is None or not min_installments <= installment_count <= max_installments:
            raise NoteValidationError(
                f"Installment count must be between {min_installments} and {max_installments}"
            )


def create_note(
    customer: Customer,
    amount_cents: int,
    issue_date: date,
    due_date: date,
    installment: bool = False,
    installment_count: Optional[int] = None,
    remarks: Optional[str] = None,
    *,
    now: datetime,
    ids: Optional[IdGenerator] = None,
    manager_override: bool = False,
    min_installments: int = 2,
    max_installments: int = 60,
) -> Note:
    """
    Issue a new note to a customer, generating its installments up front.

    Raises:
        CustomerNotEligibleError: customer is blocked and no manager override
        NoteValidationError: amount, dates or installment count are invalid
    """
    if customer.eligibility == Eligibility.NOT_ELIGIBLE and not manager_override:
        raise CustomerNotEligibleError(f"Customer {customer.customer_id} is not eligible for new notes")

    validate_note_terms(
        amount_cents, issue_date, due_date, installment, installment_count, min_installments, max_installments
    )

    ids = ids or UUIDGenerator()
    note = Note(
        note_id=ids.new_id(),
        customer_id=customer.customer_id,
        amount_cents=amount_cents,
        issue_date=issue_date,
        due_date=due_date,
        installment=installment,
        installment_count=installment_count if installment else None,
        installments=(
            generate_installment_schedule(amount_cents, installment_count, issue_date, ids)
            if installment
            else []
        ),
        remarks=remarks,
        created_at=now,
        updated_at=now,
    )
    return refresh_note(note, now)


def edit_note(
    note: Note,
    amount_cents: int,
    issue_date: date,
    due_date: date,
    installment: bool,
    installment_count: Optional[int] = None,
    remarks: Optional[str] = None,
    *,
    now: datetime,
    ids: Optional[IdGenerator] = None,
    min_installments: int = 2,
    max_installments: int = 60,
) -> Note:
    """
    Change a note's terms and regenerate its schedule.

    Paid amounts survive by installment number. A note that already received
    payments cannot switch between direct and installment-based payment.

    Raises:
        NoteValidationError: invalid terms, or paid money that would not fit
    """
    validate_note_terms(
        amount_cents, issue_date, due_date, installment, installment_count, min_installments, max_installments
    )

    if installment != note.installment and note.amount_paid_cents > 0:
        raise NoteValidationError("A note with payments cannot change between direct and installment payment")
    if not installment and note.amount_paid_cents > amount_cents:
        raise NoteValidationError("New amount is below what has already been paid")

    installments = (
        regenerate_schedule(note.installments, amount_cents, installment_count, issue_date, ids, now=now)
        if installment
        else []
    )
    updated = replace(
        note,
        amount_cents=amount_cents,
        issue_date=issue_date,
        due_date=due_date,
        installment=installment,
        installment_count=installment_count if installment else None,
        installments=installments,
        remarks=remarks,
        updated_at=now,
    )
    return refresh_note(updated, now)
