"""Tests for the remote document stores."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
import requests

from lifeos.core.schema import initial_document
from lifeos.sync.remote import (
    NO_ROWS_CODE,
    InMemoryDocumentStore,
    PostgrestDocumentStore,
    RemoteStoreError,
)


def _response(status: int, body: object = None, *, raw: bytes | None = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = raw if raw is not None else json.dumps(body).encode()
    return response


@pytest.fixture()
def session() -> requests.Session:
    s = requests.Session()
    s.get = MagicMock()  # type: ignore[method-assign]
    s.post = MagicMock()  # type: ignore[method-assign]
    return s


@pytest.fixture()
def store(session: requests.Session) -> PostgrestDocumentStore:
    return PostgrestDocumentStore(
        "https://db.example.com/",
        "anon-key",
        access_token="user-jwt",
        timeout=5,
        session=session,
    )


class TestPostgrestFetch:
    def test_auth_headers(self, store: PostgrestDocumentStore, session: requests.Session) -> None:
        assert session.headers["apikey"] == "anon-key"
        assert session.headers["Authorization"] == "Bearer user-jwt"

    def test_api_key_used_as_bearer_without_token(self, session: requests.Session) -> None:
        PostgrestDocumentStore("https://db.example.com", "anon-key", session=session)
        assert session.headers["Authorization"] == "Bearer anon-key"

    def test_returns_data_column(self, store: PostgrestDocumentStore, session: requests.Session) -> None:
        doc = initial_document()
        session.get.return_value = _response(200, {"data": doc})

        assert store.fetch("u1") == doc
        args, kwargs = session.get.call_args
        assert args[0] == "https://db.example.com/rest/v1/user_data"
        assert kwargs["params"] == {"user_id": "eq.u1", "select": "data"}
        assert kwargs["headers"]["Accept"] == "application/vnd.pgrst.object+json"
        assert kwargs["timeout"] == 5

    def test_no_rows_is_none(self, store: PostgrestDocumentStore, session: requests.Session) -> None:
        session.get.return_value = _response(406, {"code": NO_ROWS_CODE, "message": "0 rows"})
        assert store.fetch("u1") is None

    def test_other_error_raises_with_code(self, store: PostgrestDocumentStore, session: requests.Session) -> None:
        session.get.return_value = _response(401, {"code": "PGRST301", "message": "JWT expired"})
        with pytest.raises(RemoteStoreError, match="JWT expired") as exc_info:
            store.fetch("u1")
        assert exc_info.value.code == "PGRST301"

    def test_non_json_error_body(self, store: PostgrestDocumentStore, session: requests.Session) -> None:
        session.get.return_value = _response(502, raw=b"Bad Gateway")
        with pytest.raises(RemoteStoreError, match="HTTP 502") as exc_info:
            store.fetch("u1")
        assert exc_info.value.code == "502"

    def test_invalid_json_success_body(self, store: PostgrestDocumentStore, session: requests.Session) -> None:
        session.get.return_value = _response(200, raw=b"<html>")
        with pytest.raises(RemoteStoreError) as exc_info:
            store.fetch("u1")
        assert exc_info.value.code == "bad_response"

    def test_network_error(self, store: PostgrestDocumentStore, session: requests.Session) -> None:
        session.get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(RemoteStoreError) as exc_info:
            store.fetch("u1")
        assert exc_info.value.code == "network"

    def test_timeout(self, store: PostgrestDocumentStore, session: requests.Session) -> None:
        session.get.side_effect = requests.Timeout("slow")
        with pytest.raises(RemoteStoreError) as exc_info:
            store.fetch("u1")
        assert exc_info.value.code == "timeout"


class TestPostgrestUpsert:
    def test_payload_and_headers(self, store: PostgrestDocumentStore, session: requests.Session) -> None:
        session.post.return_value = _response(201, raw=b"")
        doc = initial_document()

        store.upsert("u1", doc, "2026-01-01T00:00:00Z")
        args, kwargs = session.post.call_args
        assert args[0] == "https://db.example.com/rest/v1/user_data"
        assert kwargs["params"] == {"on_conflict": "user_id"}
        assert kwargs["json"] == {"user_id": "u1", "data": doc, "updated_at": "2026-01-01T00:00:00Z"}
        assert "merge-duplicates" in kwargs["headers"]["Prefer"]

    def test_custom_table(self, session: requests.Session) -> None:
        store = PostgrestDocumentStore("https://db.example.com", "k", table="life_os", session=session)
        assert store.table_url == "https://db.example.com/rest/v1/life_os"

    def test_error_raises(self, store: PostgrestDocumentStore, session: requests.Session) -> None:
        session.post.return_value = _response(403, {"code": "42501", "message": "permission denied"})
        with pytest.raises(RemoteStoreError, match="permission denied"):
            store.upsert("u1", initial_document(), "ts")

    def test_set_access_token(self, store: PostgrestDocumentStore, session: requests.Session) -> None:
        store.set_access_token("fresh")
        assert session.headers["Authorization"] == "Bearer fresh"


class TestInMemoryStore:
    def test_missing_user_is_none(self) -> None:
        assert InMemoryDocumentStore().fetch("nobody") is None

    def test_upsert_then_fetch(self) -> None:
        store = InMemoryDocumentStore()
        doc = initial_document()
        store.upsert("u1", doc, "ts")
        assert store.fetch("u1") == doc
        assert store.rows["u1"]["updated_at"] == "ts"

    def test_stored_copy_is_independent(self) -> None:
        store = InMemoryDocumentStore()
        doc = initial_document()
        store.upsert("u1", doc, "ts")
        doc["inbox"].append({"id": "later"})
        assert store.document_for("u1")["inbox"] == []

    def test_configured_errors(self) -> None:
        store = InMemoryDocumentStore()
        store.fetch_error = RemoteStoreError("down", "network")
        with pytest.raises(RemoteStoreError):
            store.fetch("u1")
        assert store.fetch_calls == ["u1"]
