"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class Eligibility(str, Enum):
    ELIGIBLE = "eligible"
    NOT_ELIGIBLE = "not_eligible"


class Status(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    PAID_LATE = "paid_late"


class PaymentMethod(str, Enum):
    PIX = "pix"
    CARD = "card"
    CASH = "cash"
    CHECK = "check"


@dataclass
class Customer:
    """Credit customer (cliente)"""

    customer_id: str
    name: str
    phone: str
    cpf: str
    address: str
    eligibility: Eligibility = Eligibility.ELIGIBLE
    nickname: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class PaymentEdit:
    """Immutable record of one change made to a payment"""

    edited_at: datetime
    description: str
    amount_before_cents: int
    amount_after_cents: int


@dataclass
class Payment:
    """Funds applied to one installment, or directly to a note"""

    payment_id: str
    amount_cents: int
    method: PaymentMethod
    paid_at: datetime
    note_id: Optional[str] = None
    installment_id: Optional[str] = None
    notes: Optional[str] = None  # free text typed by the operator
    description: Optional[str] = None  # generated balance summary
    edited: bool = False
    edit_history: List[PaymentEdit] = field(default_factory=list)


@dataclass
class Installment:
    """Single scheduled portion of a note (parcela)"""

    installment_id: str
    number: int  # 1, 2, 3, ...
    amount_cents: int
    due_date: date
    amount_paid_cents: int = 0
    paid: bool = False
    paid_late: bool = False
    status: Status = Status.PENDING
    payments: List[Payment] = field(default_factory=list)

    @property
    def remaining_cents(self) -> int:
        return max(self.amount_cents - self.amount_paid_cents, 0)


@dataclass
class Note:
    """Promissory note (promissoria) owed by a customer"""

    note_id: str
    customer_id: str
    amount_cents: int  # face value
    issue_date: date
    due_date: date
    installment: bool = False
    installment_count: Optional[int] = None
    installments: List[Installment] = field(default_factory=list)
    amount_paid_cents: int = 0
    status: Status = Status.PENDING
    payments: List[Payment] = field(default_factory=list)  # direct payments only
    remarks: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def remaining_cents(self) -> int:
        return max(self.amount_cents - self.amount_paid_cents, 0)


@dataclass
class PaymentMeta:
    """Caller-supplied details shared by every payment an operation creates"""

    method: PaymentMethod
    paid_at: datetime  # application instant, used for lateness decisions
    notes: Optional[str] = None


@dataclass
class InstallmentPaymentResult:
    installment: Installment
    payment: Payment


@dataclass
class NotePaymentResult:
    note: Note
    payments: List[Payment]
    remainder_cents: int = 0

    @property
    def applied_cents(self) -> int:
        return sum(p.amount_cents for p in self.payments)


@dataclass
class DistributionResult:
    """Outcome of spreading one payment across a customer's notes"""

    notes: List[Note]  # every supplied note, in supplied order
    payments: List[Payment]
    remainder_cents: int

    @property
    def applied_cents(self) -> int:
        return sum(p.amount_cents for p in self.payments)

    @property
    def updated_notes(self) -> List[Note]:
        touched = {p.note_id for p in self.payments}
        return [n for n in self.notes if n.note_id in touched]


@dataclass
class PaymentEditResult:
    installment: Installment
    history_entry: PaymentEdit


@dataclass
class CustomerStatistics:
    """Aggregated debt position of one customer"""

    total_cents: int = 0
    paid_cents: int = 0
    pending_cents: int = 0  # outstanding, not yet due
    overdue_cents: int = 0  # outstanding, past due
    paid_on_time_count: int = 0
    paid_late_count: int = 0
    outstanding_count: int = 0


@dataclass
class PaymentHistoryEntry:
    """A recorded payment with the note and customer it belongs to"""

    payment: Payment
    note_id: str
    customer_id: str
    customer_name: str
    installment_number: Optional[int] = None  # None for a direct note payment
