from __future__ import annotations

from .base import SourceExtractor

# Global in-process registry: slug -> extractor class, in registration order
_REGISTRY: dict[str, type[SourceExtractor]] = {}


def register(cls: type[SourceExtractor]) -> type[SourceExtractor]:
    """
    Class decorator or direct call to register an extractor class.
    Requires cls.slug to be a non-empty string.
    """
    slug = getattr(cls, "slug", "") or ""
    if not isinstance(slug, str) or not slug.strip():
        raise ValueError(f"Cannot register extractor {cls!r}: missing/empty 'slug'.")
    key = slug.strip().lower()
    if key in _REGISTRY and _REGISTRY[key] is not cls:
        # Idempotent re-registers of the same class are fine; otherwise reject.
        raise ValueError(f"Source {key!r} already registered to {_REGISTRY[key]!r}.")
    _REGISTRY[key] = cls
    return cls


def get(slug: str) -> type[SourceExtractor]:
    """
    Look up an extractor class by slug (case-insensitive).
    Raises KeyError if not found.
    """
    key = (slug or "").strip().lower()
    if key not in _REGISTRY:
        raise KeyError(f"No source registered for slug {slug!r}.")
    return _REGISTRY[key]


def all_sources() -> dict[str, type[SourceExtractor]]:
    """
    Return a shallow copy of the registry in registration order.
    """
    return dict(_REGISTRY)


def unregister(slug: str) -> None:
    """Drop a slug (tests register throwaway sources)."""
    _REGISTRY.pop((slug or "").strip().lower(), None)
