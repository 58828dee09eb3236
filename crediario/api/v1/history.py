"""GET /v1/payments/history - Fetch recorded payments across notes"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from crediario.api.errors import to_http_exception
from crediario.api.v1.schemas import PaymentHistoryItem, PaymentHistoryResponse, PaymentSchema
from crediario.domain.exceptions import DomainException
from crediario.domain.models import PaymentMethod
from crediario.infrastructure.database.repositories import CustomerRepository, NoteRepository
from crediario.infrastructure.database.session import get_db

router = APIRouter()


def _start_of(day: Optional[date]) -> Optional[datetime]:
    return datetime.combine(day, time.min, tzinfo=timezone.utc) if day is not None else None


@router.get("/payments/history", response_model=PaymentHistoryResponse)
def get_payment_history(
    customer_id: Optional[str] = Query(None, description="Customer identifier"),
    method: Optional[PaymentMethod] = Query(None, description="Payment method"),
    paid_from: Optional[date] = Query(None, description="First day included (UTC)"),
    paid_to: Optional[date] = Query(None, description="Last day included (UTC)"),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """
    Retrieve recent payments, newest first.

    Returns:
        Payments with the note, installment number and customer they belong to
    """
    if paid_from is not None and paid_to is not None and paid_from > paid_to:
        raise HTTPException(status_code=422, detail="paid_from must not be after paid_to")

    try:
        if customer_id is not None:
            CustomerRepository(db).get(customer_id)
    except DomainException as e:
        raise to_http_exception(e)

    entries = NoteRepository(db).list_payments(
        customer_id=customer_id,
        method=method,
        paid_from=_start_of(paid_from),
        paid_before=_start_of(paid_to + timedelta(days=1)) if paid_to is not None else None,
        limit=limit,
    )

    history_items = [
        PaymentHistoryItem(
            payment=PaymentSchema.model_validate(e.payment, from_attributes=True),
            note_id=e.note_id,
            customer_id=e.customer_id,
            customer_name=e.customer_name,
            installment_number=e.installment_number,
        )
        for e in entries
    ]

    return PaymentHistoryResponse(
        customer_id=customer_id,
        total_cents=sum(e.payment.amount_cents for e in entries),
        payments=history_items,
    )
