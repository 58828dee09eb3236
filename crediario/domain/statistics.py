"""Customer-level debt summary"""

from datetime import datetime
from typing import Sequence

from crediario.domain.models import CustomerStatistics, Note, Status
from crediario.domain.status import resolve_installment_status, resolve_note_status


def customer_statistics(notes: Sequence[Note], now: datetime) -> CustomerStatistics:
    """
    Summarise a customer's notes at a given instant.

    Installment-based notes are counted per installment, direct notes as one
    item each. Statuses are resolved fresh rather than read from the caches.
    """
    stats = CustomerStatistics()

    for note in notes:
        stats.total_cents += note.amount_cents
        stats.paid_cents += note.amount_paid_cents

        if note.installment:
            items = [(resolve_installment_status(i, now), i.remaining_cents) for i in note.installments]
        else:
            items = [(resolve_note_status(note, now), note.remaining_cents)]

        for status, outstanding in items:
            if status == Status.PAID:
                stats.paid_on_time_count += 1
            elif status == Status.PAID_LATE:
                stats.paid_late_count += 1
            else:
                stats.outstanding_count += 1
                if status == Status.OVERDUE:
                    stats.overdue_cents += outstanding
                else:
                    stats.pending_cents += outstanding

    return stats
