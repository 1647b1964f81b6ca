"""
HTTP client for the notes API.

Implements the Note Store interface the board reconciler talks to:
list / get / create / update / delete. Every failure (connection error,
timeout, non-success status, malformed payload) raises StoreError;
nothing is retried.
"""
import logging
from typing import List, Dict, Any, Optional

import requests

from .schema import Note, NoteDraft, NoteNotFound, ValidationError

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """The note store could not be reached or answered with an error."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NoteClient:
    """Talks to notes_server.py over HTTP."""

    def __init__(self, base_url: str = "http://127.0.0.1:3000", timeout: float = 5.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None):
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise StoreError(f"{method} {path} failed: {e}") from e

        if not r.ok:
            try:
                message = r.json().get("error", r.reason)
            except ValueError:
                message = r.reason
            raise StoreError(f"{method} {path} → {r.status_code}: {message}", status=r.status_code)

        try:
            return r.json()
        except ValueError as e:
            raise StoreError(f"{method} {path} returned invalid JSON", status=r.status_code) from e

    def _parse(self, data, path: str) -> Note:
        try:
            return Note.from_dict(data)
        except (ValidationError, KeyError, TypeError, ValueError, AttributeError) as e:
            raise StoreError(f"{path} returned a malformed note: {e}") from e

    def list(self) -> List[Note]:
        data = self._request("GET", "/notes")
        if not isinstance(data, list):
            raise StoreError(f"/notes returned {type(data).__name__}, expected a list")
        return [self._parse(item, "/notes") for item in data]

    def get(self, note_id: int) -> Note:
        try:
            data = self._request("GET", f"/notes/{note_id}")
        except StoreError as e:
            if e.status == 404:
                raise NoteNotFound(note_id) from e
            raise
        return self._parse(data, f"/notes/{note_id}")

    def create(self, draft: NoteDraft) -> Note:
        data = self._request("POST", "/notes", draft.to_dict())
        return self._parse(data, "/notes")

    def update(self, note_id: int, patch: Dict[str, Any]) -> Note:
        """PUT the given wire-format fields (``title``, ``stage``, ``isDone``, ...)."""
        try:
            data = self._request("PUT", f"/notes/{note_id}", patch)
        except StoreError as e:
            if e.status == 404:
                raise NoteNotFound(note_id) from e
            raise
        return self._parse(data, f"/notes/{note_id}")

    def delete(self, note_id: int) -> None:
        try:
            self._request("DELETE", f"/notes/{note_id}")
        except StoreError as e:
            if e.status == 404:
                raise NoteNotFound(note_id) from e
            raise
        logger.debug(f"Deleted note {note_id}")
