"""Pydantic schemas for API request/response validation and snapshot exchange"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from crediario.domain.models import (
    Customer,
    CustomerStatistics,
    Eligibility,
    Installment,
    Note,
    Payment,
    PaymentEdit,
    PaymentMethod,
    Status,
)


class PaymentEditSchema(BaseModel):
    """One entry of a payment's edit history"""

    model_config = ConfigDict(from_attributes=True)

    edited_at: datetime
    description: str
    amount_before_cents: int
    amount_after_cents: int

    def to_domain(self) -> PaymentEdit:
        return PaymentEdit(**self.model_dump())


class PaymentSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payment_id: str
    amount_cents: int
    method: PaymentMethod
    paid_at: datetime
    note_id: Optional[str] = None
    installment_id: Optional[str] = None
    notes: Optional[str] = None
    description: Optional[str] = None
    edited: bool = False
    edit_history: List[PaymentEditSchema] = []

    def to_domain(self) -> Payment:
        return Payment(
            payment_id=self.payment_id,
            amount_cents=self.amount_cents,
            method=self.method,
            paid_at=self.paid_at,
            note_id=self.note_id,
            installment_id=self.installment_id,
            notes=self.notes,
            description=self.description,
            edited=self.edited,
            edit_history=[entry.to_domain() for entry in self.edit_history],
        )


class InstallmentSchema(BaseModel):
    """Single installment in a note's schedule"""

    model_config = ConfigDict(from_attributes=True)

    installment_id: str
    number: int
    amount_cents: int
    amount_paid_cents: int = 0
    due_date: date
    paid: bool = False
    paid_late: bool = False
    status: Status = Status.PENDING
    payments: List[PaymentSchema] = []

    def to_domain(self) -> Installment:
        return Installment(
            installment_id=self.installment_id,
            number=self.number,
            amount_cents=self.amount_cents,
            amount_paid_cents=self.amount_paid_cents,
            due_date=self.due_date,
            paid=self.paid,
            paid_late=self.paid_late,
            status=self.status,
            payments=[p.to_domain() for p in self.payments],
        )


class NoteSchema(BaseModel):
    """Full note snapshot, as stored and exchanged with the notes API"""

    model_config = ConfigDict(from_attributes=True)

    note_id: str
    customer_id: str
    amount_cents: int
    amount_paid_cents: int = 0
    issue_date: date
    due_date: date
    installment: bool = False
    installment_count: Optional[int] = None
    installments: List[InstallmentSchema] = []
    status: Status = Status.PENDING
    payments: List[PaymentSchema] = []
    remarks: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, note: Note) -> "NoteSchema":
        return cls.model_validate(note, from_attributes=True)

    def to_domain(self) -> Note:
        return Note(
            note_id=self.note_id,
            customer_id=self.customer_id,
            amount_cents=self.amount_cents,
            amount_paid_cents=self.amount_paid_cents,
            issue_date=self.issue_date,
            due_date=self.due_date,
            installment=self.installment,
            installment_count=self.installment_count,
            installments=[inst.to_domain() for inst in self.installments],
            status=self.status,
            payments=[p.to_domain() for p in self.payments],
            remarks=self.remarks,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class CustomerSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    customer_id: str
    name: str
    nickname: Optional[str] = None
    phone: str
    cpf: str
    address: str
    eligibility: Eligibility
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, customer: Customer) -> "CustomerSchema":
        return cls.model_validate(customer, from_attributes=True)


class StatisticsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_cents: int
    paid_cents: int
    pending_cents: int
    overdue_cents: int
    paid_on_time_count: int
    paid_late_count: int
    outstanding_count: int

    @classmethod
    def from_domain(cls, stats: CustomerStatistics) -> "StatisticsSchema":
        return cls.model_validate(stats, from_attributes=True)


# --- requests / responses ------------------------------------------------------


class CustomerCreateRequest(BaseModel):
    """Request body for POST /v1/customers"""

    name: str = Field(..., min_length=1)
    phone: str = Field(..., description="10 or 11 digits, formatting allowed")
    cpf: str = Field(..., description="CPF, formatting allowed")
    address: str = ""
    nickname: Optional[str] = None
    eligibility: Eligibility = Eligibility.ELIGIBLE


class CustomerResponse(BaseModel):
    """Response for GET /v1/customers/{customer_id}"""

    customer: CustomerSchema
    notes: List[NoteSchema]
    statistics: StatisticsSchema


class NoteCreateRequest(BaseModel):
    """Request body for POST /v1/customers/{customer_id}/notes"""

    amount_cents: int = Field(..., gt=0, description="Face value in cents")
    issue_date: date
    due_date: date
    installment: bool = False
    installment_count: Optional[int] = Field(None, description="Defaults to the configured count")
    remarks: Optional[str] = None
    manager_override: bool = Field(False, description="Issue even if the customer is not eligible")


class NoteUpdateRequest(BaseModel):
    """Request body for PUT /v1/notes/{note_id}"""

    amount_cents: int = Field(..., gt=0)
    issue_date: date
    due_date: date
    installment: bool
    installment_count: Optional[int] = None
    remarks: Optional[str] = None


class PaymentRequest(BaseModel):
    """
    Request body for POST /v1/payments.

    Exactly one target: an installment, a note, or a whole customer
    (distributed across every open note).
    """

    amount_cents: int = Field(..., gt=0, description="Amount paid in cents")
    method: PaymentMethod
    notes: Optional[str] = None
    installment_id: Optional[str] = None
    note_id: Optional[str] = None
    customer_id: Optional[str] = None

    @model_validator(mode="after")
    def exactly_one_target(self) -> "PaymentRequest":
        targets = [t for t in (self.installment_id, self.note_id, self.customer_id) if t]
        if len(targets) != 1:
            raise ValueError("Provide exactly one of installment_id, note_id or customer_id")
        return self


class PaymentResponse(BaseModel):
    """Response for POST /v1/payments"""

    operation: str  # installment | note | distribution
    requested_cents: int
    applied_cents: int
    remainder_cents: int
    payments: List[PaymentSchema]
    notes: List[NoteSchema]  # notes touched by the payment
    store: str


class PaymentUpdateRequest(BaseModel):
    """Request body for PUT /v1/payments/{payment_id}"""

    amount_cents: int = Field(..., ge=0)
    method: Optional[PaymentMethod] = None
    notes: Optional[str] = None


class PaymentChangeResponse(BaseModel):
    """Response for PUT and DELETE /v1/payments/{payment_id}"""

    note: NoteSchema
    history_entry: Optional[PaymentEditSchema] = None
    store: str


class CustomerListResponse(BaseModel):
    """Response for GET /v1/customers"""

    customers: List[CustomerSchema]


class PaymentHistoryItem(BaseModel):
    """Single payment in history"""

    payment: PaymentSchema
    note_id: str
    customer_id: str
    customer_name: str
    installment_number: Optional[int] = None


class PaymentHistoryResponse(BaseModel):
    """Response for GET /v1/payments/history"""

    customer_id: Optional[str] = None
    total_cents: int
    payments: List[PaymentHistoryItem]
