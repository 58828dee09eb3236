"""Pytest fixtures for testing"""

import os

TEST_DATABASE_URL = "sqlite:///./test.db"
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)

import pytest
from datetime import date, datetime, timedelta, timezone
from typing import Generator, List, Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from crediario.api.dependencies import get_clock, get_id_generator
from crediario.api.main import create_app
from crediario.infrastructure.database.models import Base
from crediario.infrastructure.database.session import get_db
from crediario.domain.models import Installment, Note, PaymentMeta, PaymentMethod
from crediario.domain.status import refresh_installment, refresh_note
from crediario.utils.identity import FixedClock, SequentialIdGenerator


# Every test runs at this instant; "yesterday" is overdue, "today" is not
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()
YESTERDAY = TODAY - timedelta(days=1)

# Valid CPFs (check digits match)
CPF_MARIA = "529.982.247-25"
CPF_JOAO = "111.444.777-35"

# Test database
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def ids() -> SequentialIdGenerator:
    return SequentialIdGenerator("t")


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database, frozen clock and predictable ids"""
    app = create_app(create_tables=False)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    clock = FixedClock(NOW)
    id_generator = SequentialIdGenerator("id")

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_id_generator] = lambda: id_generator
    return TestClient(app)


@pytest.fixture
def meta() -> PaymentMeta:
    """Cash payment made at NOW"""
    return PaymentMeta(method=PaymentMethod.CASH, paid_at=NOW)


@pytest.fixture
def make_installment():
    """Factory for installments with a status resolved at NOW"""

    def _make(
        number: int = 1,
        amount_cents: int = 10000,
        due_date: date = YESTERDAY,
        amount_paid_cents: int = 0,
        installment_id: Optional[str] = None,
    ) -> Installment:
        installment = Installment(
            installment_id=installment_id or f"inst-{number}",
            number=number,
            amount_cents=amount_cents,
            due_date=due_date,
            amount_paid_cents=amount_paid_cents,
            paid=amount_paid_cents >= amount_cents,
        )
        return refresh_installment(installment, NOW)

    return _make


@pytest.fixture
def make_note():
    """
    Factory for notes resolved at NOW.

    With installments the note is installment-based and its amount is the
    schedule's sum; without, it is a direct note of ``amount_cents``.
    """

    def _make(
        note_id: str = "note-1",
        installments: Optional[List[Installment]] = None,
        amount_cents: int = 10000,
        due_date: date = TODAY + timedelta(days=30),
        issue_date: date = date(2024, 1, 10),
        customer_id: str = "cust-1",
    ) -> Note:
        if installments:
            note = Note(
                note_id=note_id,
                customer_id=customer_id,
                amount_cents=sum(inst.amount_cents for inst in installments),
                issue_date=issue_date,
                due_date=max(inst.due_date for inst in installments),
                installment=True,
                installment_count=len(installments),
                installments=installments,
            )
        else:
            note = Note(
                note_id=note_id,
                customer_id=customer_id,
                amount_cents=amount_cents,
                issue_date=issue_date,
                due_date=due_date,
            )
        return refresh_note(note, NOW)

    return _make


@pytest.fixture
def customer_payload() -> dict:
    return {
        "name": "Maria Souza",
        "phone": "(11) 98765-4321",
        "cpf": CPF_MARIA,
        "address": "Rua das Flores, 10",
    }
