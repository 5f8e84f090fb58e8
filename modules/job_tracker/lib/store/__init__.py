from .base import (
    EMPLOYERS,
    POSTINGS,
    Condition,
    DuplicateRecordError,
    RecordNotFoundError,
    Store,
    StoreAuthError,
    StoreError,
    eq,
    ge,
    gt,
    le,
    lt,
    ne,
)
from .pocketbase import PocketBaseStore
from .sqlite import SqliteStore

__all__ = [
    "EMPLOYERS",
    "POSTINGS",
    "Condition",
    "DuplicateRecordError",
    "PocketBaseStore",
    "RecordNotFoundError",
    "SqliteStore",
    "Store",
    "StoreAuthError",
    "StoreError",
    "eq",
    "ge",
    "gt",
    "le",
    "lt",
    "ne",
]
