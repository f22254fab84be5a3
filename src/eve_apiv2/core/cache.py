"""
EVE API v2 Identity Cache

Process-wide store of resolved field sets, keyed by entity kind and
numeric id. Entries are merged, never replaced, and never evicted; a
server-declared cached_until is recorded per entry for freshness queries.

Lookup-table kinds (skills, certificates, alliances) keep their whole
collection in a CollectionCache, loaded by a single remote call.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Mapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from .logging import get_logger

if TYPE_CHECKING:
    from .auth import KeyScope

logger = get_logger(__name__)


class IdentityCache:
    """Field sets for one entity kind, keyed by numeric id."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._entries: dict[int, dict[str, Any]] = {}
        self._cached_until: dict[int, datetime] = {}
        # Ids whose entry holds the fields only a covering key sees
        self._authenticated: set[int] = set()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entries

    def has(self, entity_id: int) -> bool:
        return int(entity_id) in self._entries

    def get(self, entity_id: int) -> Optional[dict[str, Any]]:
        """Return a copy of the cached field set, or None."""
        with self._lock:
            entry = self._entries.get(int(entity_id))
            return dict(entry) if entry is not None else None

    def put(
        self,
        entity_id: int,
        fields: Mapping[str, Any],
        cached_until: Optional[datetime] = None,
        authenticated: bool = False,
    ) -> dict[str, Any]:
        """
        Merge fields into the entry for entity_id.

        Fields already present keep their value; None values are skipped.
        authenticated marks the entry as carrying key-only fields; the mark
        is never removed.

        Returns:
            A copy of the merged entry
        """
        entity_id = int(entity_id)
        with self._lock:
            entry = self._entries.setdefault(entity_id, {})
            for name, value in fields.items():
                if value is not None and name not in entry:
                    entry[name] = value
            if cached_until is not None:
                self._cached_until[entity_id] = cached_until
            if authenticated:
                self._authenticated.add(entity_id)
            return dict(entry)

    def cached_until(self, entity_id: int) -> Optional[datetime]:
        return self._cached_until.get(int(entity_id))

    def is_authenticated(self, entity_id: int) -> bool:
        """True when the entry was resolved with a key covering the entity."""
        return int(entity_id) in self._authenticated

    def is_fresh(self, entity_id: int, now: Optional[datetime] = None) -> bool:
        """True when the entry's cached_until lies in the future."""
        expiry = self.cached_until(entity_id)
        if expiry is None:
            return False
        return expiry >= (now or datetime.now(timezone.utc))

    def ids(self) -> list[int]:
        return sorted(self._entries)

    def items(self) -> Iterator[tuple[int, dict[str, Any]]]:
        with self._lock:
            snapshot = [(k, dict(v)) for k, v in sorted(self._entries.items())]
        return iter(snapshot)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._cached_until.clear()
            self._authenticated.clear()


class CollectionCache(IdentityCache):
    """
    An IdentityCache filled in one go from a collection endpoint.

    Also carries auxiliary name tables (skill groups, certificate
    categories and classes) that several records point into.
    """

    def __init__(self, kind: str) -> None:
        super().__init__(kind)
        self.loaded = False
        self.loaded_until: Optional[datetime] = None
        self.tables: dict[str, dict[int, str]] = {}

    def ensure_loaded(self, loader: Callable[["CollectionCache"], None]) -> bool:
        """
        Run loader once for the lifetime of this cache.

        A loader that raises leaves the cache unloaded so the next
        caller retries; nothing it merged before failing is kept.

        Returns:
            True if this call performed the load
        """
        with self._lock:
            if self.loaded:
                return False
            try:
                loader(self)
            except Exception:
                self._entries.clear()
                self._cached_until.clear()
                self.tables.clear()
                raise
            self.loaded = True
            logger.debug("%s collection loaded with %d records", self.kind, len(self._entries))
            return True

    def find_by_id(self, entity_id: int) -> Optional[dict[str, Any]]:
        return self.get(entity_id)

    def find_by(self, attribute: str, value: str) -> Optional[dict[str, Any]]:
        """
        Case-insensitive match on a string attribute.

        Duplicates resolve to the lowest numeric id.
        """
        wanted = value.casefold()
        with self._lock:
            for entity_id in sorted(self._entries):
                candidate = self._entries[entity_id].get(attribute)
                if isinstance(candidate, str) and candidate.casefold() == wanted:
                    return dict(self._entries[entity_id])
        return None

    def table(self, name: str) -> dict[int, str]:
        return self.tables.setdefault(name, {})

    def clear(self) -> None:
        with self._lock:
            super().clear()
            self.tables.clear()
            self.loaded = False
            self.loaded_until = None


class CacheRegistry:
    """
    One IdentityCache per entity kind, created on first use.

    Also holds resolved key scopes, keyed by (key_id, v_code).
    """

    def __init__(self) -> None:
        self._identities: dict[str, IdentityCache] = {}
        self._collections: dict[str, CollectionCache] = {}
        self.keys: dict[tuple[int, str], "KeyScope"] = {}
        self._lock = threading.Lock()

    def identity(self, kind: str) -> IdentityCache:
        with self._lock:
            if kind in self._collections:
                return self._collections[kind]
            if kind not in self._identities:
                self._identities[kind] = IdentityCache(kind)
            return self._identities[kind]

    def collection(self, kind: str) -> CollectionCache:
        with self._lock:
            if kind in self._identities:
                raise ValueError(f"{kind} is already cached per id, not as a collection")
            if kind not in self._collections:
                self._collections[kind] = CollectionCache(kind)
            return self._collections[kind]

    def clear(self) -> None:
        with self._lock:
            self._identities.clear()
            self._collections.clear()
            self.keys.clear()


# =============================================================================
# Singleton Management
# =============================================================================

_cache_registry: CacheRegistry | None = None


def get_cache_registry() -> CacheRegistry:
    """Get or create the process-wide cache registry."""
    global _cache_registry
    if _cache_registry is None:
        _cache_registry = CacheRegistry()
    return _cache_registry


def reset_cache_registry() -> None:
    """Reset the process-wide cache registry (for testing)."""
    global _cache_registry
    _cache_registry = None
