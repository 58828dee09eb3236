"""Integration tests for the SQL repositories"""

import pytest
from datetime import date, datetime, timedelta, timezone

from crediario.domain.customers import register_customer
from crediario.domain.exceptions import CustomerNotFoundError
from crediario.domain.history import delete_payment, edit_payment
from crediario.domain.models import Eligibility, PaymentMeta, PaymentMethod
from crediario.domain.notes import create_note
from crediario.domain.payments import pay_note, pay_note_directly
from crediario.domain.snapshots import with_installment, with_note
from crediario.domain.status import refresh_note
from crediario.infrastructure.database.models import PaymentRecord
from crediario.infrastructure.database.repositories import CustomerRepository, NoteRepository


@pytest.fixture
def customer(db, now, ids):
    customer = register_customer("Maria Souza", "11987654321", "52998224725", "Rua A", now=now, ids=ids)
    CustomerRepository(db).add(customer)
    db.commit()
    return customer


def test_customer_round_trip(db, customer):
    repo = CustomerRepository(db)

    loaded = repo.get(customer.customer_id)

    assert loaded == customer
    assert repo.exists_with_cpf("52998224725") is True
    assert repo.exists_with_cpf("11144477735") is False


def test_unknown_customer(db):
    with pytest.raises(CustomerNotFoundError):
        CustomerRepository(db).get("nope")
    with pytest.raises(CustomerNotFoundError):
        NoteRepository(db).load_notes_for_customer("nope")


def test_note_snapshot_round_trip(db, customer, now, meta, ids):
    repo = NoteRepository(db)
    installment_note = create_note(customer, 30000, date(2024, 4, 10), date(2024, 7, 10), True, 3, now=now, ids=ids)
    installment_note = pay_note(installment_note, 12000, meta, ids=ids).note
    direct_note = create_note(customer, 5000, date(2024, 6, 1), date(2024, 7, 1), now=now, ids=ids)
    direct_note = pay_note_directly(direct_note, 1500, meta, ids=ids).note

    repo.save_notes(customer.customer_id, [installment_note, direct_note])
    db.commit()
    db.expire_all()

    loaded = repo.load_notes_for_customer(customer.customer_id)

    assert loaded == [installment_note, direct_note]


def test_save_replaces_snapshot(db, customer, now, meta, ids):
    repo = NoteRepository(db)
    note = create_note(customer, 20000, date(2024, 4, 10), date(2024, 6, 10), True, 2, now=now, ids=ids)
    note = pay_note(note, 15000, meta, ids=ids).note
    repo.save_notes(customer.customer_id, [note])
    db.commit()

    first, second = note.installments
    doomed = second.payments[0].payment_id
    edited = edit_payment(first, first.payments[0].payment_id, 8000, now=now)
    note = with_installment(note, edited.installment)
    note = refresh_note(with_installment(note, delete_payment(second, doomed, now=now)), now)
    repo.save_notes(customer.customer_id, with_note([note], note))
    db.commit()
    db.expire_all()

    loaded = repo.load_notes_for_customer(customer.customer_id)[0]

    assert loaded.amount_paid_cents == 8000
    assert loaded.installments[0].payments[0].edit_history == edited.installment.payments[0].edit_history
    assert loaded.installments[1].payments == []
    assert db.get(PaymentRecord, doomed) is None


def test_removed_note_is_deleted(db, customer, now, ids):
    repo = NoteRepository(db)
    keep = create_note(customer, 1000, date(2024, 6, 1), date(2024, 7, 1), now=now, ids=ids)
    drop = create_note(customer, 2000, date(2024, 6, 1), date(2024, 7, 1), now=now, ids=ids)
    repo.save_notes(customer.customer_id, [keep, drop])
    db.commit()

    repo.save_notes(customer.customer_id, [keep])
    db.commit()

    assert [n.note_id for n in repo.load_notes_for_customer(customer.customer_id)] == [keep.note_id]


def test_find_customer_id(db, customer, now, meta, ids):
    repo = NoteRepository(db)
    note = create_note(customer, 20000, date(2024, 5, 1), date(2024, 7, 1), True, 2, now=now, ids=ids)
    note = pay_note(note, 100, meta, ids=ids).note
    direct = create_note(customer, 500, date(2024, 6, 1), date(2024, 6, 20), now=now, ids=ids)
    direct = pay_note_directly(direct, 100, meta, ids=ids).note
    repo.save_notes(customer.customer_id, [note, direct])
    db.commit()

    cid = customer.customer_id
    assert repo.find_customer_id(note_id=note.note_id) == cid
    assert repo.find_customer_id(installment_id=note.installments[1].installment_id) == cid
    assert repo.find_customer_id(payment_id=note.installments[0].payments[0].payment_id) == cid
    assert repo.find_customer_id(payment_id=direct.payments[0].payment_id) == cid
    assert repo.find_customer_id(note_id="missing") is None
    assert repo.find_customer_id(payment_id="missing") is None


def test_notes_keep_snapshot_order(db, customer, now, ids):
    repo = NoteRepository(db)
    notes = [
        create_note(customer, 1000 * n, date(2024, 6, 1), date(2024, 6, 1) + timedelta(days=n), now=now, ids=ids)
        for n in (3, 1, 2)
    ]
    repo.save_notes(customer.customer_id, notes)
    db.commit()

    assert [n.amount_cents for n in repo.load_notes_for_customer(customer.customer_id)] == [3000, 1000, 2000]


def test_list_customers_search(db, customer, now, ids):
    repo = CustomerRepository(db)
    other = register_customer("Ana Lima", "11912345678", "11144477735", "Rua B", nickname="Aninha", now=now, ids=ids)
    repo.add(other)
    db.commit()

    assert [c.name for c in repo.list_customers()] == ["Ana Lima", "Maria Souza"]
    assert repo.list_customers(search="MARIA") == [customer]
    assert repo.list_customers(search="aninha") == [other]
    assert repo.list_customers(search="529.982") == [customer]
    assert repo.list_customers(eligibility=Eligibility.NOT_ELIGIBLE) == []


def test_list_payments_newest_first(db, customer, now, ids):
    repo = NoteRepository(db)
    earlier = PaymentMeta(method=PaymentMethod.CASH, paid_at=datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc))
    later = PaymentMeta(method=PaymentMethod.PIX, paid_at=datetime(2024, 6, 10, 9, 0, tzinfo=timezone.utc))
    note = create_note(customer, 20000, date(2024, 4, 10), date(2024, 6, 10), True, 2, now=now, ids=ids)
    note = pay_note(note, 10000, earlier, ids=ids).note
    direct = create_note(customer, 5000, date(2024, 6, 1), date(2024, 7, 1), now=now, ids=ids)
    direct = pay_note_directly(direct, 1500, later, ids=ids).note
    repo.save_notes(customer.customer_id, [note, direct])
    db.commit()

    entries = repo.list_payments(customer_id=customer.customer_id)

    assert [e.payment.amount_cents for e in entries] == [1500, 10000]
    assert [e.installment_number for e in entries] == [None, 1]
    assert [e.note_id for e in entries] == [direct.note_id, note.note_id]
    assert entries[1].payment == note.installments[0].payments[0]
    assert {e.customer_name for e in entries} == {"Maria Souza"}

    assert [e.payment.method for e in repo.list_payments(method=PaymentMethod.CASH)] == [PaymentMethod.CASH]
    june_5 = datetime(2024, 6, 5, tzinfo=timezone.utc)
    assert [e.installment_number for e in repo.list_payments(paid_before=june_5)] == [1]
    assert [e.installment_number for e in repo.list_payments(paid_from=june_5)] == [None]
    assert len(repo.list_payments(limit=1)) == 1
    assert repo.list_payments(customer_id="someone-else") == []
