"""Lookups and replacements inside a customer's note snapshot"""

from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from crediario.domain.exceptions import (
    InstallmentNotFoundError,
    NoteNotFoundError,
    PaymentNotFoundError,
)
from crediario.domain.models import Installment, Note, Payment


def find_note(notes: Sequence[Note], note_id: str) -> Note:
    for note in notes:
        if note.note_id == note_id:
            return note
    raise NoteNotFoundError(f"Note {note_id} not found")


def find_installment(notes: Sequence[Note], installment_id: str) -> Tuple[Note, Installment]:
    for note in notes:
        for inst in note.installments:
            if inst.installment_id == installment_id:
                return note, inst
    raise InstallmentNotFoundError(f"Installment {installment_id} not found")


def locate_payment(notes: Sequence[Note], payment_id: str) -> Tuple[Note, Optional[Installment], Payment]:
    """Find a payment and its owner: (note, installment or None if direct, payment)"""
    for note in notes:
        for payment in note.payments:
            if payment.payment_id == payment_id:
                return note, None, payment
        for inst in note.installments:
            for payment in inst.payments:
                if payment.payment_id == payment_id:
                    return note, inst, payment
    raise PaymentNotFoundError(f"Payment {payment_id} not found")


def with_note(notes: Sequence[Note], updated: Note) -> List[Note]:
    """Swap in the updated version of a note, keeping list order"""
    return [updated if n.note_id == updated.note_id else n for n in notes]


def with_installment(note: Note, updated: Installment) -> Note:
    installments = [
        updated if inst.installment_id == updated.installment_id else inst for inst in note.installments
    ]
    return replace(note, installments=installments)
