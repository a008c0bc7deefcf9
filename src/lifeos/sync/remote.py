"""Remote document stores: one row per user holding the whole document.

The remote table has three columns: ``user_id`` (primary key), ``data``
(the document as JSON) and ``updated_at``.  Row level access control is the
store's job; clients only present the caller's token.
"""

from __future__ import annotations

import copy
import json
from typing import Any, Protocol

import requests

from lifeos.core.schema import Document

# PostgREST reports "the single-object query matched no rows" with this code.
NO_ROWS_CODE = "PGRST116"

_SINGLE_OBJECT = "application/vnd.pgrst.object+json"


class RemoteStoreError(Exception):
    """A remote read or write failed.

    ``code`` carries the store-reported error code when there is one, or a
    short local tag (``network``, ``timeout``, ``bad_response``).
    """

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class RemoteDocumentStore(Protocol):
    """What the sync engine needs from a remote store.

    ``fetch`` returns None when the user has no row yet; every other
    failure raises ``RemoteStoreError``.
    """

    def fetch(self, user_id: str) -> Document | None: ...

    def upsert(self, user_id: str, document: Document, updated_at: str) -> None: ...


class PostgrestDocumentStore:
    """HTTP client for a PostgREST (Supabase-style) ``user_data`` table."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        access_token: str | None = None,
        table: str = "user_data",
        timeout: float | None = 10,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.table = table
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {access_token or api_key}",
            }
        )

    @property
    def table_url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def set_access_token(self, token: str) -> None:
        self.session.headers.update({"Authorization": f"Bearer {token}"})

    # ---------- reads ----------
    def fetch(self, user_id: str) -> Document | None:
        try:
            r = self.session.get(
                self.table_url,
                params={"user_id": f"eq.{user_id}", "select": "data"},
                headers={"Accept": _SINGLE_OBJECT},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise RemoteStoreError(f"Load timed out: {exc}", "timeout") from exc
        except requests.RequestException as exc:
            raise RemoteStoreError(f"Load failed: {exc}", "network") from exc

        if not r.ok:
            message, code = _error_details(r)
            if code == NO_ROWS_CODE:
                return None
            raise RemoteStoreError(message, code)

        try:
            row = r.json()
        except ValueError as exc:
            raise RemoteStoreError(f"Load returned invalid JSON: {exc}", "bad_response") from exc
        if not isinstance(row, dict):
            raise RemoteStoreError("Load returned an unexpected payload", "bad_response")
        return row.get("data")

    # ---------- writes ----------
    def upsert(self, user_id: str, document: Document, updated_at: str) -> None:
        payload = {"user_id": user_id, "data": document, "updated_at": updated_at}
        try:
            r = self.session.post(
                self.table_url,
                params={"on_conflict": "user_id"},
                json=payload,
                headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise RemoteStoreError(f"Save timed out: {exc}", "timeout") from exc
        except requests.RequestException as exc:
            raise RemoteStoreError(f"Save failed: {exc}", "network") from exc

        if not r.ok:
            message, code = _error_details(r)
            raise RemoteStoreError(message, code)


def _error_details(response: requests.Response) -> tuple[str, str | None]:
    """Extract ``(message, code)`` from a PostgREST error response."""
    try:
        body: Any = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or f"HTTP {response.status_code}"
        code = body.get("code")
        return str(message), str(code) if code is not None else None
    return f"HTTP {response.status_code}: {response.text}", str(response.status_code)


class InMemoryDocumentStore:
    """Dict-backed store for offline use and tests.

    Stored documents are JSON round-tripped, as a real store would.  Set
    ``fetch_error`` / ``upsert_error`` to make the next calls fail.
    """

    def __init__(self, rows: dict[str, Document] | None = None) -> None:
        self.rows: dict[str, dict] = {}
        for user_id, document in (rows or {}).items():
            self.rows[user_id] = {"data": _copy(document), "updated_at": None}
        self.fetch_error: RemoteStoreError | None = None
        self.upsert_error: RemoteStoreError | None = None
        self.fetch_calls: list[str] = []
        self.upsert_calls: list[tuple[str, Document, str]] = []

    def fetch(self, user_id: str) -> Document | None:
        self.fetch_calls.append(user_id)
        if self.fetch_error is not None:
            raise self.fetch_error
        row = self.rows.get(user_id)
        if row is None:
            return None
        return _copy(row["data"])

    def upsert(self, user_id: str, document: Document, updated_at: str) -> None:
        stored = _copy(document)
        self.upsert_calls.append((user_id, stored, updated_at))
        if self.upsert_error is not None:
            raise self.upsert_error
        self.rows[user_id] = {"data": stored, "updated_at": updated_at}

    def document_for(self, user_id: str) -> Document | None:
        row = self.rows.get(user_id)
        return copy.deepcopy(row["data"]) if row else None


def _copy(document: Any) -> Any:
    return json.loads(json.dumps(document))
