"""SQLAlchemy ORM models for customers, notes, installments and payments"""

from sqlalchemy import Column, String, BigInteger, Boolean, Date, DateTime, Integer, ForeignKey, Text, JSON
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class CustomerRecord(Base):
    """Customer with contact details and eligibility flag"""

    __tablename__ = "customer"

    id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False)
    nickname = Column(Text, nullable=True)
    phone = Column(String(11), nullable=False)
    cpf = Column(String(11), nullable=False, unique=True)
    address = Column(Text, nullable=False)
    eligibility = Column(String(16), nullable=False, default="eligible")
    created_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    notes = relationship(
        "NoteRecord", back_populates="customer", cascade="all, delete-orphan", order_by="NoteRecord.position"
    )


class NoteRecord(Base):
    """Promissory note; owns its installments and direct payments"""

    __tablename__ = "note"

    id = Column(String(64), primary_key=True)
    customer_id = Column(String(64), ForeignKey("customer.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    amount_paid_cents = Column(BigInteger, nullable=False, default=0)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    installment = Column(Boolean, nullable=False, default=False)
    installment_count = Column(Integer, nullable=True)
    status = Column(String(16), nullable=False, default="pending")
    remarks = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=0)  # order within the customer snapshot
    created_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    customer = relationship("CustomerRecord", back_populates="notes")
    installments = relationship(
        "InstallmentRecord",
        back_populates="note",
        cascade="all, delete-orphan",
        order_by="InstallmentRecord.number",
    )
    payments = relationship(
        "PaymentRecord",
        back_populates="note",
        cascade="all, delete-orphan",
        order_by="PaymentRecord.position",
    )


class InstallmentRecord(Base):
    """Individual installment within a note"""

    __tablename__ = "installment"

    id = Column(String(64), primary_key=True)
    note_id = Column(String(64), ForeignKey("note.id", ondelete="CASCADE"), nullable=False, index=True)
    number = Column(Integer, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    amount_paid_cents = Column(BigInteger, nullable=False, default=0)
    due_date = Column(Date, nullable=False)
    paid = Column(Boolean, nullable=False, default=False)
    paid_late = Column(Boolean, nullable=False, default=False)
    status = Column(String(16), nullable=False, default="pending")

    note = relationship("NoteRecord", back_populates="installments")
    payments = relationship(
        "PaymentRecord",
        back_populates="installment",
        cascade="all, delete-orphan",
        order_by="PaymentRecord.position",
    )


class PaymentRecord(Base):
    """Payment owned by exactly one installment, or directly by a note (one FK set)"""

    __tablename__ = "payment"

    id = Column(String(64), primary_key=True)
    note_id = Column(String(64), ForeignKey("note.id", ondelete="CASCADE"), nullable=True, index=True)
    installment_id = Column(String(64), ForeignKey("installment.id", ondelete="CASCADE"), nullable=True, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    method = Column(String(16), nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=False)
    notes = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    edited = Column(Boolean, nullable=False, default=False)
    edit_history = Column(JSON, nullable=False, default=list)
    position = Column(Integer, nullable=False, default=0)  # order within its owner

    note = relationship("NoteRecord", back_populates="payments")
    installment = relationship("InstallmentRecord", back_populates="payments")
