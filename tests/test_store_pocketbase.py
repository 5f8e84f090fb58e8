# tests/test_store_pocketbase.py
import copy
import json
import threading
from datetime import datetime, timezone

import pytest
import requests

from modules.job_tracker.lib.store import (
    POSTINGS,
    Condition,
    DuplicateRecordError,
    RecordNotFoundError,
    StoreAuthError,
    StoreError,
    eq,
    lt,
)
from modules.job_tracker.lib.store.pocketbase import PocketBaseStore, render_filter

BASE = "http://pb.local:8090"


def response(status: int, body=None) -> requests.Response:
    r = requests.Response()
    r.status_code = status
    r._content = json.dumps(body).encode("utf-8") if body is not None else b""
    r.encoding = "utf-8"
    return r


class FakeHttp:
    """Records requests; replies from a queue (auth handled automatically)."""

    def __init__(self, *replies, auth=None):
        self.replies = list(replies)
        self.auth = auth if auth is not None else response(200, {"token": "tok-123"})
        self.calls = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, copy.deepcopy(kwargs)))
        if url.endswith("auth-with-password"):
            if isinstance(self.auth, Exception):
                raise self.auth
            return self.auth
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def close(self):
        self.closed = True


def store(http) -> PocketBaseStore:
    return PocketBaseStore(BASE, "admin@example.com", "s3cret", http=http)


def test_render_filter_quotes_and_escapes():
    expr = render_filter([eq("title", 'Say "hi" \\ bye'), lt("days_posted", 3), Condition("salary_min", "!=", None)])
    assert expr == 'title = "Say \\"hi\\" \\\\ bye" && days_posted < 3 && salary_min != null'
    assert render_filter([]) == ""


def test_render_filter_uses_pocketbase_date_layout():
    cutoff = datetime(2025, 1, 1, 6, 0, 0, 250000, tzinfo=timezone.utc)
    assert render_filter([lt("last_seen_at", cutoff)]) == 'last_seen_at < "2025-01-01 06:00:00.250Z"'


def test_authenticate_as_admin_and_send_token():
    http = FakeHttp(response(200, {"items": [{"id": "r1"}]}))
    s = store(http)
    rows = s.list(POSTINGS, [eq("status", "active")])

    assert rows == [{"id": "r1"}]
    method, url, kwargs = http.calls[0]
    assert (method, url) == ("POST", BASE + "/api/admins/auth-with-password")
    assert kwargs["json"] == {"identity": "admin@example.com", "password": "s3cret"}

    method, url, kwargs = http.calls[1]
    assert (method, url) == ("GET", BASE + "/api/collections/postings/records")
    assert kwargs["headers"] == {"Authorization": "tok-123"}
    assert kwargs["params"]["filter"] == 'status = "active"'


def test_auth_collection_endpoint():
    http = FakeHttp()
    PocketBaseStore(BASE, "bot@example.com", "pw", auth_collection="users", http=http).authenticate()
    assert http.calls[0][1] == BASE + "/api/collections/users/auth-with-password"


@pytest.mark.parametrize(
    "auth",
    [
        response(400, {"message": "Failed to authenticate."}),
        response(200, {"record": {}}),
        requests.ConnectionError("refused"),
    ],
)
def test_authentication_failures(auth):
    with pytest.raises(StoreAuthError):
        store(FakeHttp(auth=auth)).authenticate()


def test_list_follows_pages():
    full = [{"id": f"r{i}"} for i in range(200)]
    http = FakeHttp(response(200, {"items": full}), response(200, {"items": [{"id": "last"}]}))
    rows = store(http).list(POSTINGS, sort="-last_seen_at")

    assert len(rows) == 201 and rows[-1] == {"id": "last"}
    pages = [kw["params"]["page"] for m, _, kw in http.calls if m == "GET"]
    assert pages == [1, 2]
    assert http.calls[1][2]["params"]["sort"] == "-last_seen_at"


def test_list_limit_stops_early():
    http = FakeHttp(response(200, {"items": [{"id": "a"}]}))
    assert store(http).first(POSTINGS, [eq("identity_key", "k")]) == {"id": "a"}
    assert http.calls[1][2]["params"]["perPage"] == 1


def test_create_and_update_paths():
    http = FakeHttp(response(200, {"id": "new"}), response(200, {"id": "new", "status": "closed"}))
    s = store(http)
    assert s.create(POSTINGS, {"title": "PM"}) == {"id": "new"}
    assert s.update(POSTINGS, "new", {"status": "closed"})["status"] == "closed"
    assert http.calls[1][0:2] == ("POST", BASE + "/api/collections/postings/records")
    assert http.calls[2][0:2] == ("PATCH", BASE + "/api/collections/postings/records/new")


@pytest.mark.parametrize(
    "reply,exc",
    [
        (response(400, {"message": "Failed", "data": {"identity_key": {"code": "validation_not_unique"}}}),
         DuplicateRecordError),
        (response(400, {"message": "Failed", "data": {"title": {"code": "validation_required"}}}), StoreError),
        (response(404, {"message": "Missing"}), RecordNotFoundError),
        (response(401, {"message": "Expired"}), StoreAuthError),
        (response(403, {"message": "Forbidden"}), StoreAuthError),
        (response(500), StoreError),
        (requests.ReadTimeout("slow"), StoreError),
    ],
)
def test_error_mapping(reply, exc):
    with pytest.raises(exc):
        store(FakeHttp(reply)).create(POSTINGS, {"title": "PM"})


def test_duplicate_is_not_confused_with_other_validation_errors():
    reply = response(400, {"data": {"title": {"code": "validation_required"}}})
    with pytest.raises(StoreError) as ei:
        store(FakeHttp(reply)).create(POSTINGS, {})
    assert not isinstance(ei.value, DuplicateRecordError)
    assert "title=validation_required" in str(ei.value)


def test_injected_http_is_not_closed():
    http = FakeHttp()
    store(http).close()
    assert not http.closed


def test_owned_clients_are_per_thread_and_closed(monkeypatch):
    from modules.job_tracker.lib.store import pocketbase

    made: list[FakeHttp] = []

    def fake_client(timeout, accept):
        http = FakeHttp(response(200, {"items": []}), response(200, {"items": []}))
        made.append(http)
        return http

    monkeypatch.setattr(pocketbase, "HttpClient", fake_client)
    s = PocketBaseStore(BASE, "admin@example.com", "s3cret")
    s.authenticate()
    s.list(POSTINGS)

    worker = threading.Thread(target=s.list, args=(POSTINGS,))
    worker.start()
    worker.join()

    assert len(made) == 2
    assert all(h.calls[-1][0] == "GET" for h in made)
    s.close()
    assert all(h.closed for h in made)
