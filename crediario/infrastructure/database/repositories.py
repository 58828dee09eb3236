"""Data access layer mapping ORM rows to domain snapshots"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from crediario.domain.exceptions import CustomerNotFoundError
from crediario.domain.models import (
    Customer,
    Eligibility,
    Installment,
    Note,
    Payment,
    PaymentEdit,
    PaymentHistoryEntry,
    PaymentMethod,
    Status,
)
from crediario.infrastructure.database.models import (
    CustomerRecord,
    InstallmentRecord,
    NoteRecord,
    PaymentRecord,
)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; stored instants are UTC"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CustomerRepository:
    """Repository for customers"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, customer: Customer) -> Customer:
        self.db.add(
            CustomerRecord(
                id=customer.customer_id,
                name=customer.name,
                nickname=customer.nickname,
                phone=customer.phone,
                cpf=customer.cpf,
                address=customer.address,
                eligibility=customer.eligibility.value,
                created_at=customer.created_at,
                updated_at=customer.updated_at,
            )
        )
        self.db.flush()
        return customer

    def update(self, customer: Customer) -> Customer:
        record = self._get_record(customer.customer_id)
        record.name = customer.name
        record.nickname = customer.nickname
        record.phone = customer.phone
        record.address = customer.address
        record.eligibility = customer.eligibility.value
        record.updated_at = customer.updated_at
        self.db.flush()
        return customer

    def get(self, customer_id: str) -> Customer:
        """
        Raises:
            CustomerNotFoundError: no such customer
        """
        return self._to_domain(self._get_record(customer_id))

    def exists_with_cpf(self, cpf: str) -> bool:
        return self.db.scalar(select(CustomerRecord.id).where(CustomerRecord.cpf == cpf)) is not None

    def list_customers(
        self, search: Optional[str] = None, eligibility: Optional[Eligibility] = None
    ) -> List[Customer]:
        """Customers by name, optionally narrowed by a name/nickname/CPF search and eligibility"""
        query = select(CustomerRecord)
        if search:
            pattern = f"%{search.lower()}%"
            digits = "".join(ch for ch in search if ch.isdigit())
            conditions = [
                func.lower(CustomerRecord.name).like(pattern),
                func.lower(CustomerRecord.nickname).like(pattern),
            ]
            if digits:
                conditions.append(CustomerRecord.cpf.like(f"%{digits}%"))
            query = query.where(or_(*conditions))
        if eligibility is not None:
            query = query.where(CustomerRecord.eligibility == eligibility.value)

        records = self.db.scalars(query.order_by(CustomerRecord.name, CustomerRecord.id))
        return [self._to_domain(record) for record in records]

    def _get_record(self, customer_id: str) -> CustomerRecord:
        record = self.db.get(CustomerRecord, customer_id)
        if record is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")
        return record

    @staticmethod
    def _to_domain(record: CustomerRecord) -> Customer:
        return Customer(
            customer_id=record.id,
            name=record.name,
            nickname=record.nickname,
            phone=record.phone,
            cpf=record.cpf,
            address=record.address,
            eligibility=Eligibility(record.eligibility),
            created_at=_aware(record.created_at),
            updated_at=_aware(record.updated_at),
        )


class NoteRepository:
    """Repository for a customer's note snapshot (notes, installments, payments)"""

    def __init__(self, db: Session):
        self.db = db

    def load_notes_for_customer(self, customer_id: str) -> List[Note]:
        customer = self.db.get(CustomerRecord, customer_id)
        if customer is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")
        return [self._note_to_domain(record) for record in customer.notes]

    def save_notes(self, customer_id: str, notes: List[Note]) -> None:
        """
        Replace the customer's stored snapshot with the given one.

        Rows missing from the snapshot (e.g. deleted payments) are removed by
        the delete-orphan cascades. Flushes but does not commit.
        """
        customer = self.db.get(CustomerRecord, customer_id)
        if customer is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")

        customer.notes = [
            self.db.merge(self._note_to_record(note, position)) for position, note in enumerate(notes)
        ]
        self.db.flush()

    def find_customer_id(
        self,
        note_id: Optional[str] = None,
        installment_id: Optional[str] = None,
        payment_id: Optional[str] = None,
    ) -> Optional[str]:
        """Resolve which customer owns a note, installment or payment"""
        if note_id is not None:
            return self.db.scalar(select(NoteRecord.customer_id).where(NoteRecord.id == note_id))

        if installment_id is not None:
            return self.db.scalar(
                select(NoteRecord.customer_id)
                .join(InstallmentRecord, InstallmentRecord.note_id == NoteRecord.id)
                .where(InstallmentRecord.id == installment_id)
            )

        if payment_id is not None:
            payment = self.db.get(PaymentRecord, payment_id)
            if payment is None:
                return None
            if payment.installment is not None:
                return payment.installment.note.customer_id
            return payment.note.customer_id if payment.note is not None else None

        return None

    def list_payments(
        self,
        customer_id: Optional[str] = None,
        method: Optional[PaymentMethod] = None,
        paid_from: Optional[datetime] = None,
        paid_before: Optional[datetime] = None,
        limit: int = 20,
    ) -> List[PaymentHistoryEntry]:
        """
        Fetch recent payments across notes, newest first.

        Installment payments reach their note through the installment row;
        direct payments point at the note themselves.

        Args:
            customer_id: Only this customer's payments
            method: Only payments made with this method
            paid_from: Inclusive lower bound on paid_at
            paid_before: Exclusive upper bound on paid_at
            limit: Maximum number of entries
        """
        owning_note_id = func.coalesce(PaymentRecord.note_id, InstallmentRecord.note_id)
        query = (
            select(PaymentRecord, InstallmentRecord.number, NoteRecord.id, CustomerRecord.id, CustomerRecord.name)
            .select_from(PaymentRecord)
            .outerjoin(InstallmentRecord, PaymentRecord.installment_id == InstallmentRecord.id)
            .join(NoteRecord, NoteRecord.id == owning_note_id)
            .join(CustomerRecord, CustomerRecord.id == NoteRecord.customer_id)
        )
        if customer_id is not None:
            query = query.where(NoteRecord.customer_id == customer_id)
        if method is not None:
            query = query.where(PaymentRecord.method == method.value)
        if paid_from is not None:
            query = query.where(PaymentRecord.paid_at >= paid_from)
        if paid_before is not None:
            query = query.where(PaymentRecord.paid_at < paid_before)

        query = query.order_by(PaymentRecord.paid_at.desc(), PaymentRecord.id).limit(limit)
        return [
            PaymentHistoryEntry(
                payment=self._payment_to_domain(record, note_id),
                note_id=note_id,
                customer_id=owner_id,
                customer_name=owner_name,
                installment_number=number,
            )
            for record, number, note_id, owner_id, owner_name in self.db.execute(query)
        ]

    # --- mapping -------------------------------------------------------------

    @staticmethod
    def _payment_to_domain(record: PaymentRecord, note_id: str) -> Payment:
        return Payment(
            payment_id=record.id,
            amount_cents=record.amount_cents,
            method=PaymentMethod(record.method),
            paid_at=_aware(record.paid_at),
            note_id=note_id,
            installment_id=record.installment_id,
            notes=record.notes,
            description=record.description,
            edited=record.edited,
            edit_history=[
                PaymentEdit(
                    edited_at=datetime.fromisoformat(entry["edited_at"]),
                    description=entry["description"],
                    amount_before_cents=entry["amount_before_cents"],
                    amount_after_cents=entry["amount_after_cents"],
                )
                for entry in record.edit_history or []
            ],
        )

    def _note_to_domain(self, record: NoteRecord) -> Note:
        return Note(
            note_id=record.id,
            customer_id=record.customer_id,
            amount_cents=record.amount_cents,
            amount_paid_cents=record.amount_paid_cents,
            issue_date=record.issue_date,
            due_date=record.due_date,
            installment=record.installment,
            installment_count=record.installment_count,
            installments=[
                Installment(
                    installment_id=inst.id,
                    number=inst.number,
                    amount_cents=inst.amount_cents,
                    amount_paid_cents=inst.amount_paid_cents,
                    due_date=inst.due_date,
                    paid=inst.paid,
                    paid_late=inst.paid_late,
                    status=Status(inst.status),
                    payments=[self._payment_to_domain(p, record.id) for p in inst.payments],
                )
                for inst in record.installments
            ],
            status=Status(record.status),
            payments=[self._payment_to_domain(p, record.id) for p in record.payments],
            remarks=record.remarks,
            created_at=_aware(record.created_at),
            updated_at=_aware(record.updated_at),
        )

    @staticmethod
    def _payment_to_record(payment: Payment, position: int, direct: bool) -> PaymentRecord:
        return PaymentRecord(
            id=payment.payment_id,
            note_id=payment.note_id if direct else None,
            installment_id=None if direct else payment.installment_id,
            amount_cents=payment.amount_cents,
            method=payment.method.value,
            paid_at=payment.paid_at,
            notes=payment.notes,
            description=payment.description,
            edited=payment.edited,
            edit_history=[
                {
                    "edited_at": entry.edited_at.isoformat(),
                    "description": entry.description,
                    "amount_before_cents": entry.amount_before_cents,
                    "amount_after_cents": entry.amount_after_cents,
                }
                for entry in payment.edit_history
            ],
            position=position,
        )

    def _note_to_record(self, note: Note, position: int) -> NoteRecord:
        return NoteRecord(
            id=note.note_id,
            customer_id=note.customer_id,
            amount_cents=note.amount_cents,
            amount_paid_cents=note.amount_paid_cents,
            issue_date=note.issue_date,
            due_date=note.due_date,
            installment=note.installment,
            installment_count=note.installment_count,
            status=note.status.value,
            remarks=note.remarks,
            position=position,
            created_at=note.created_at,
            updated_at=note.updated_at,
            installments=[
                InstallmentRecord(
                    id=inst.installment_id,
                    note_id=note.note_id,
                    number=inst.number,
                    amount_cents=inst.amount_cents,
                    amount_paid_cents=inst.amount_paid_cents,
                    due_date=inst.due_date,
                    paid=inst.paid,
                    paid_late=inst.paid_late,
                    status=inst.status.value,
                    payments=[self._payment_to_record(p, i, direct=False) for i, p in enumerate(inst.payments)],
                )
                for inst in note.installments
            ],
            payments=[self._payment_to_record(p, i, direct=True) for i, p in enumerate(note.payments)],
        )
