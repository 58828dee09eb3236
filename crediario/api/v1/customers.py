"""Customer registration, lookup and eligibility endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from crediario.api.dependencies import get_clock, get_id_generator, get_note_gateway, get_request_id
from crediario.api.errors import to_http_exception
from crediario.api.v1.schemas import (
    CustomerCreateRequest,
    CustomerListResponse,
    CustomerResponse,
    CustomerSchema,
    NoteSchema,
    StatisticsSchema,
)
from crediario.domain.customers import register_customer, toggle_eligibility
from crediario.domain.exceptions import DomainException
from crediario.domain.models import Eligibility
from crediario.domain.statistics import customer_statistics
from crediario.domain.status import refresh_note
from crediario.infrastructure.database.repositories import CustomerRepository
from crediario.infrastructure.database.session import get_db
from crediario.infrastructure.gateway import FallbackNoteGateway
from crediario.utils.identity import Clock, IdGenerator

router = APIRouter()


@router.post("/customers", response_model=CustomerSchema, status_code=201)
def create_customer(
    body: CustomerCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    ids: IdGenerator = Depends(get_id_generator),
):
    """Register a customer; CPF must be valid and not already registered"""
    try:
        customer = register_customer(
            name=body.name,
            phone=body.phone,
            cpf=body.cpf,
            address=body.address,
            nickname=body.nickname,
            eligibility=body.eligibility,
            now=clock.now(),
            ids=ids,
        )
        repo = CustomerRepository(db)
        if repo.exists_with_cpf(customer.cpf):
            raise HTTPException(status_code=409, detail="A customer with this CPF already exists")

        repo.add(customer)
        db.commit()
        return CustomerSchema.from_domain(customer)

    except DomainException as e:
        db.rollback()
        logging.warning(f"Customer rejected: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)


@router.get("/customers", response_model=CustomerListResponse)
def list_customers(
    q: Optional[str] = Query(None, description="Part of the name, nickname or CPF"),
    eligibility: Optional[Eligibility] = Query(None),
    db: Session = Depends(get_db),
):
    """List customers by name"""
    customers = CustomerRepository(db).list_customers(search=q, eligibility=eligibility)
    return CustomerListResponse(customers=[CustomerSchema.from_domain(c) for c in customers])


@router.get("/customers/{customer_id}", response_model=CustomerResponse)
def get_customer(
    customer_id: str,
    db: Session = Depends(get_db),
    gateway: FallbackNoteGateway = Depends(get_note_gateway),
    clock: Clock = Depends(get_clock),
):
    """
    Retrieve a customer with every note and a debt summary.

    Returns:
        Customer, notes (with installments and payments), statistics
    """
    now = clock.now()
    try:
        customer = CustomerRepository(db).get(customer_id)
        # stored statuses are as of the last write
        notes = [refresh_note(n, now) for n in gateway.load_notes_for_customer(customer_id).value]
    except DomainException as e:
        raise to_http_exception(e)

    return CustomerResponse(
        customer=CustomerSchema.from_domain(customer),
        notes=[NoteSchema.from_domain(n) for n in notes],
        statistics=StatisticsSchema.from_domain(customer_statistics(notes, now)),
    )


@router.patch("/customers/{customer_id}/eligibility", response_model=CustomerSchema)
def switch_eligibility(
    customer_id: str,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Flip a customer between eligible and not eligible for new notes"""
    repo = CustomerRepository(db)
    try:
        customer = repo.update(toggle_eligibility(repo.get(customer_id), clock.now()))
        db.commit()
    except DomainException as e:
        db.rollback()
        raise to_http_exception(e)

    return CustomerSchema.from_domain(customer)
