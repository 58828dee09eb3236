"""Note store gateway: remote backend first, local database as fallback"""

import logging
from dataclasses import dataclass
from typing import Generic, List, Optional, TypeVar

from crediario.domain.exceptions import PersistenceError
from crediario.domain.models import Note
from crediario.infrastructure.clients.notes_api import RemoteNoteStore
from crediario.infrastructure.database.repositories import NoteRepository
from crediario.infrastructure.observability.metrics import store_fallback_counter

T = TypeVar("T")

SOURCE_REMOTE = "remote"
SOURCE_LOCAL = "local"


@dataclass
class GatewayResult(Generic[T]):
    """Value plus the store that produced it"""

    value: T
    source: str


class FallbackNoteGateway:
    """
    Persistence collaborator used by the API.

    Loads prefer the remote backend and fall back to the local database when
    it fails. Saves always go to the local database (it is part of the
    request's transaction) and are then pushed to the remote backend; a failed
    push is logged and reported through ``source`` instead of failing the
    request. Without a remote store configured everything is local.
    """

    def __init__(self, local: NoteRepository, remote: Optional[RemoteNoteStore] = None):
        self.local = local
        self.remote = remote

    def load_notes_for_customer(self, customer_id: str) -> GatewayResult[List[Note]]:
        if self.remote is not None:
            try:
                return GatewayResult(self.remote.load_notes_for_customer(customer_id), SOURCE_REMOTE)
            except PersistenceError as e:
                store_fallback_counter.labels(operation="load").inc()
                logging.warning(
                    f"Remote note store unavailable, using local store: {e}",
                    extra={"customer_id": customer_id, "operation": "load"},
                )

        return GatewayResult(self.local.load_notes_for_customer(customer_id), SOURCE_LOCAL)

    def save_notes(self, customer_id: str, notes: List[Note]) -> GatewayResult[None]:
        self.local.save_notes(customer_id, notes)

        if self.remote is not None:
            try:
                self.remote.save_notes(customer_id, notes)
                return GatewayResult(None, SOURCE_REMOTE)
            except PersistenceError as e:
                store_fallback_counter.labels(operation="save").inc()
                logging.warning(
                    f"Remote note store rejected save, kept local copy: {e}",
                    extra={"customer_id": customer_id, "operation": "save"},
                )

        return GatewayResult(None, SOURCE_LOCAL)
