from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import quote

import requests

from .. import logging_bridge
from ..http_client import HttpClient, decode_json
from ..utils import to_iso
from .base import (
    Condition,
    DuplicateRecordError,
    RecordNotFoundError,
    Store,
    StoreAuthError,
    StoreError,
    check_collection,
)

LOG = logging.getLogger(__name__)

PAGE_SIZE = 200


def render_filter(conditions: Iterable[Condition]) -> str:
    """
    Render conditions as a PocketBase filter expression.

    >>> render_filter([Condition("status", "=", "active"), Condition("last_seen_at", "<", "2025-01-01")])
    'status = "active" && last_seen_at < "2025-01-01"'
    """
    return " && ".join(f"{c.field} {c.op} {_literal(c.value)}" for c in conditions)


def _literal(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, datetime):
        # date fields are stored as "YYYY-MM-DD HH:MM:SS.mmmZ" and compared as text
        value = to_iso(value).replace("T", " ", 1)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    s = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{s}"'


class PocketBaseStore(Store):
    """
    REST client for a PocketBase instance holding the `employers` and
    `postings` collections.

    Auth is admin-by-password (`/api/admins/auth-with-password`) unless an auth
    collection is configured, in which case that collection's
    auth-with-password endpoint is used.
    """

    def __init__(
        self,
        base_url: str,
        email: str,
        password: str,
        *,
        auth_collection: str | None = None,
        http: HttpClient | None = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.email = email
        self._password = password
        self.auth_collection = auth_collection
        # injected client: shared and owned by the caller. Otherwise one per
        # worker thread, since sync runs store calls concurrently.
        self.http = http
        self.timeout = float(timeout)
        self._local = threading.local()
        self._clients: list[HttpClient] = []
        self._clients_lock = threading.Lock()
        self._token: str | None = None

    # ---- auth ---------------------------------------------------------------

    def authenticate(self) -> None:
        if self.auth_collection:
            path = f"/api/collections/{quote(self.auth_collection)}/auth-with-password"
        else:
            path = "/api/admins/auth-with-password"
        try:
            resp = self._client().request(
                "POST",
                self.base_url + path,
                json={"identity": self.email, "password": self._password},
            )
        except requests.RequestException as e:
            raise StoreAuthError(f"PocketBase auth request failed: {e}") from e

        if resp.status_code >= 400:
            logging_bridge.error({
                "component": "job_tracker.store.pocketbase",
                "op": "authenticate",
                "status": resp.status_code,
                "url": self.base_url + path,
            })
            raise StoreAuthError(f"PocketBase auth rejected (HTTP {resp.status_code})")

        body = decode_json(resp, path)
        token = body.get("token") if isinstance(body, dict) else None
        if not token:
            raise StoreAuthError("PocketBase auth response carried no token")
        self._token = token
        LOG.info("Authenticated to PocketBase at %s as %s", self.base_url, self.email)

    # ---- Store API ----------------------------------------------------------

    def list(
        self,
        collection: str,
        conditions: Iterable[Condition] = (),
        *,
        limit: int | None = None,
        sort: str | None = None,
    ) -> list[dict[str, Any]]:
        check_collection(collection)
        params: dict[str, Any] = {"perPage": min(PAGE_SIZE, limit) if limit else PAGE_SIZE, "skipTotal": 1}
        expr = render_filter(conditions)
        if expr:
            params["filter"] = expr
        if sort:
            params["sort"] = sort

        items: list[dict[str, Any]] = []
        page = 1
        while True:
            params["page"] = page
            body = self._call("GET", f"/api/collections/{collection}/records", params=params)
            batch = body.get("items") or []
            items.extend(batch)
            if limit is not None and len(items) >= limit:
                return items[:limit]
            if len(batch) < params["perPage"]:
                return items
            page += 1

    def create(self, collection: str, data: Mapping[str, Any]) -> dict[str, Any]:
        check_collection(collection)
        return self._call("POST", f"/api/collections/{collection}/records", json=_jsonable(data))

    def update(self, collection: str, record_id: str, data: Mapping[str, Any]) -> dict[str, Any]:
        check_collection(collection)
        return self._call(
            "PATCH",
            f"/api/collections/{collection}/records/{quote(record_id)}",
            json=_jsonable(data),
        )

    def close(self) -> None:
        with self._clients_lock:
            clients, self._clients = self._clients, []
        for client in clients:
            client.close()
        self._local = threading.local()

    # ---- internals ----------------------------------------------------------

    def _client(self) -> HttpClient:
        if self.http is not None:
            return self.http
        client = getattr(self._local, "client", None)
        if client is None:
            client = HttpClient(timeout=self.timeout, accept="application/json")
            self._local.client = client
            with self._clients_lock:
                self._clients.append(client)
        return client

    def _call(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        if self._token is None:
            self.authenticate()
        url = self.base_url + path
        try:
            resp = self._client().request(method, url, headers={"Authorization": self._token or ""}, **kwargs)
        except requests.RequestException as e:
            raise StoreError(f"{method} {path} failed: {e}") from e

        if resp.status_code < 400:
            return decode_json(resp, url) if resp.content else {}

        body = _safe_json(resp)
        message = str(body.get("message") or resp.reason or "")
        if resp.status_code in (401, 403):
            raise StoreAuthError(f"{method} {path} unauthorized (HTTP {resp.status_code}): {message}")
        if resp.status_code == 404:
            raise RecordNotFoundError(f"{method} {path}: not found")
        if resp.status_code == 400 and _is_not_unique(body):
            raise DuplicateRecordError(f"{method} {path}: {_field_errors(body)}")
        raise StoreError(f"{method} {path} failed (HTTP {resp.status_code}): {message} {_field_errors(body)}".strip())


def _jsonable(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in data.items()}


def _safe_json(resp: requests.Response) -> dict[str, Any]:
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _is_not_unique(body: Mapping[str, Any]) -> bool:
    data = body.get("data") or {}
    return any(isinstance(v, dict) and v.get("code") == "validation_not_unique" for v in data.values())


def _field_errors(body: Mapping[str, Any]) -> str:
    data = body.get("data") or {}
    parts = [f"{k}={v.get('code')}" for k, v in data.items() if isinstance(v, dict)]
    return ", ".join(parts)
