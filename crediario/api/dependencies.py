"""Dependency injection for FastAPI endpoints"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from crediario.config import settings
from crediario.infrastructure.clients.notes_api import RemoteNoteStore
from crediario.infrastructure.database.repositories import NoteRepository
from crediario.infrastructure.database.session import get_db
from crediario.infrastructure.gateway import FallbackNoteGateway
from crediario.utils.identity import Clock, IdGenerator, SystemClock, UUIDGenerator


class CustomerLocks:
    """
    One lock per customer id.

    Payment operations load a snapshot, compute, and save; holding the
    customer's lock across all three keeps two submissions from computing
    against the same starting balance.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    @contextmanager
    def hold(self, customer_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(customer_id, threading.Lock())
        with lock:
            yield


_customer_locks = CustomerLocks()
_clock = SystemClock()
_ids = UUIDGenerator()


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_clock() -> Clock:
    """Provide the instant source used for lateness and overdue decisions"""
    return _clock


def get_id_generator() -> IdGenerator:
    """Provide the id source for new customers, notes and payments"""
    return _ids


def get_customer_locks() -> CustomerLocks:
    return _customer_locks


def get_note_gateway(db: Session = Depends(get_db)) -> FallbackNoteGateway:
    """Provide the note store: remote backend when configured, local database always"""
    remote = RemoteNoteStore(settings.notes_api_base) if settings.notes_api_base else None
    return FallbackNoteGateway(NoteRepository(db), remote)
