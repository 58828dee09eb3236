"""Backend REST API client for customer note snapshots"""

import logging
import time
from typing import List, Optional

import httpx

from crediario.api.v1.schemas import NoteSchema
from crediario.config import settings
from crediario.domain.exceptions import PersistenceError
from crediario.domain.models import Note
from crediario.infrastructure.observability.metrics import remote_store_failure_counter

logger = logging.getLogger(__name__)


class RemoteNoteStore:
    """Client for the remote backend that owns the authoritative note store"""

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = max_retries or settings.remote_max_retries
        self.backoff_base = settings.remote_backoff_base if backoff_base is None else backoff_base
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    def load_notes_for_customer(self, customer_id: str) -> List[Note]:
        """
        Fetch a customer's full note snapshot.

        Raises:
            PersistenceError: On timeout, HTTP errors, or invalid response
        """
        with self._client() as client:
            try:
                response = client.get(f"/customers/{customer_id}/notes")
                response.raise_for_status()
                data = response.json()
                return [NoteSchema.model_validate(item).to_domain() for item in data.get("notes", [])]

            except httpx.TimeoutException as e:
                remote_store_failure_counter.labels(operation="load").inc()
                raise PersistenceError(f"Notes API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                remote_store_failure_counter.labels(operation="load").inc()
                raise PersistenceError(f"Notes API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                remote_store_failure_counter.labels(operation="load").inc()
                raise PersistenceError(f"Notes API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                remote_store_failure_counter.labels(operation="load").inc()
                raise PersistenceError(f"Invalid note data from notes API: {e}") from e

    def save_notes(self, customer_id: str, notes: List[Note]) -> None:
        """
        Replace a customer's snapshot on the backend, retrying transient failures.

        Retry strategy:
        - Exponential backoff: base, 2*base, 4*base, ...
        - Retries on 5xx errors and network failures; 4xx fails immediately

        Raises:
            PersistenceError: After the last attempt fails
        """
        payload = {"notes": [NoteSchema.from_domain(note).model_dump(mode="json") for note in notes]}

        attempt = 0
        with self._client() as client:
            while True:
                try:
                    response = client.put(f"/customers/{customer_id}/notes", json=payload)
                    response.raise_for_status()
                    return

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    remote_store_failure_counter.labels(operation="save").inc()

                    retryable = not isinstance(e, httpx.HTTPStatusError) or e.response.status_code >= 500
                    if not retryable or attempt >= self.max_retries:
                        raise PersistenceError(f"Notes API save failed after {attempt} attempt(s): {e}") from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    logger.warning(
                        "Notes API save failed, retrying",
                        extra={"customer_id": customer_id, "attempt": attempt, "backoff_seconds": backoff},
                    )
                    time.sleep(backoff)
