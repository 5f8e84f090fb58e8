from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

EMPLOYERS = "employers"
POSTINGS = "postings"
COLLECTIONS = (EMPLOYERS, POSTINGS)

OPERATORS = ("=", "!=", "<", "<=", ">", ">=")


# -----------------------------
# Exceptions
# -----------------------------
class StoreError(RuntimeError):
    """Any failure talking to the persisted catalog."""


class StoreAuthError(StoreError):
    """Credentials rejected or auth endpoint unreachable; fatal for a cycle."""


class DuplicateRecordError(StoreError):
    """A create collided with a unique field (employer name / identity key)."""


class RecordNotFoundError(StoreError):
    """Update target does not exist."""


# -----------------------------
# Filtering
# -----------------------------
@dataclass(frozen=True)
class Condition:
    """Single `field <op> value` predicate; a list of them is AND-ed."""

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported operator {self.op!r}; expected one of {OPERATORS}")


def eq(field: str, value: Any) -> Condition:
    return Condition(field, "=", value)


def ne(field: str, value: Any) -> Condition:
    return Condition(field, "!=", value)


def lt(field: str, value: Any) -> Condition:
    return Condition(field, "<", value)


def le(field: str, value: Any) -> Condition:
    return Condition(field, "<=", value)


def gt(field: str, value: Any) -> Condition:
    return Condition(field, ">", value)


def ge(field: str, value: Any) -> Condition:
    return Condition(field, ">=", value)


# -----------------------------
# Interface
# -----------------------------
class Store(ABC):
    """
    Minimal persisted-object store: list with server-side filtering, create,
    update. Records are plain dicts carrying an `id` string.

    Implementations are blocking; async callers wrap them in worker threads.
    """

    def authenticate(self) -> None:
        """Establish credentials. Raises StoreAuthError. Default: no-op."""
        return None

    @abstractmethod
    def list(
        self,
        collection: str,
        conditions: Iterable[Condition] = (),
        *,
        limit: int | None = None,
        sort: str | None = None,
    ) -> list[dict[str, Any]]:
        """Records matching every condition. `sort` is a field name, '-' prefix for descending."""

    @abstractmethod
    def create(self, collection: str, data: Mapping[str, Any]) -> dict[str, Any]:
        """Insert and return the stored record. Raises DuplicateRecordError on unique collisions."""

    @abstractmethod
    def update(self, collection: str, record_id: str, data: Mapping[str, Any]) -> dict[str, Any]:
        """Patch fields of one record and return it. Raises RecordNotFoundError."""

    def first(self, collection: str, conditions: Iterable[Condition] = ()) -> dict[str, Any] | None:
        rows = self.list(collection, conditions, limit=1)
        return rows[0] if rows else None

    def close(self) -> None:
        return None

    def __enter__(self) -> Store:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


def check_collection(collection: str) -> str:
    if collection not in COLLECTIONS:
        raise StoreError(f"Unknown collection {collection!r}; expected one of {COLLECTIONS}")
    return collection
