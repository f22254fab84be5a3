"""
Lazily resolved, write-once field storage shared by every entity.

An entity owns a ResolvableRecord and declares its attributes with
LazyField. Reading an attribute that is not yet set runs the entity's
resolver, at most once per instance; afterwards reads are local and
missing fields simply return None.

    class Skill(RecordBacked):
        name = LazyField("Skill name")

        def __init__(self, context, skill_id):
            self._record = ResolvableRecord("skill", LookupKey("skill_id", skill_id),
                                            self._resolve, {"skill_id": skill_id})
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, NamedTuple, Optional

from ..core.logging import get_logger

if TYPE_CHECKING:
    from ..core.cache import CollectionCache, IdentityCache
    from ..core.context import ApiContext

logger = get_logger(__name__)


class FieldAlreadySetError(AttributeError):
    """A write-once field was assigned a second, different value."""

    def __init__(self, kind: str, name: str, current: Any, attempted: Any) -> None:
        self.kind = kind
        self.name = name
        self.current = current
        self.attempted = attempted
        super().__init__(
            f"{kind}.{name} is already set to {current!r}; refusing {attempted!r}"
        )


class LookupKey(NamedTuple):
    """The attribute an entity is looked up by, and its value."""

    attribute: str
    value: Any


class ResolvableRecord:
    """
    Write-once field set with an at-most-once resolution pass.

    States: unresolved -> resolving -> resolved. A resolver that raises
    leaves the record unresolved, so the next read retries.
    """

    def __init__(
        self,
        kind: str,
        lookup_key: LookupKey,
        resolver: Optional[Callable[["ResolvableRecord"], None]] = None,
        fields: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.kind = kind
        self.lookup_key = lookup_key
        self.resolved = False
        self.cached_until: Optional[datetime] = None
        self._resolver = resolver
        self._resolving = False
        self._fields: dict[str, Any] = {}
        if fields:
            self.fill(fields)

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def has(self, name: str) -> bool:
        return name in self._fields

    def peek(self, name: str, default: Any = None) -> Any:
        """Read a field without triggering resolution."""
        return self._fields.get(name, default)

    def get(self, name: str) -> Any:
        """Read a field, resolving the record first if it is unset."""
        if name in self._fields:
            return self._fields[name]
        self.ensure_resolved()
        return self._fields.get(name)

    def set(self, name: str, value: Any) -> None:
        """
        Write a field once.

        None is ignored (absent stays absent). Writing the value a field
        already holds is a no-op; writing a different one raises.
        """
        if value is None:
            return
        if name in self._fields:
            current = self._fields[name]
            if current == value:
                return
            raise FieldAlreadySetError(self.kind, name, current, value)
        self._fields[name] = value

    def fill(self, fields: Mapping[str, Any]) -> list[str]:
        """
        Copy every non-None value whose field is still unset.

        Returns:
            Names of the fields actually written
        """
        written = []
        for name, value in fields.items():
            if value is not None and name not in self._fields:
                self._fields[name] = value
                written.append(name)
        return written

    def ensure_resolved(self) -> None:
        """Run the resolver unless it already ran (or is running)."""
        if self.resolved or self._resolving:
            return
        if self._resolver is None:
            self.resolved = True
            return

        self._resolving = True
        try:
            self._resolver(self)
        finally:
            self._resolving = False
        self.resolved = True

    def snapshot(self) -> dict[str, Any]:
        return dict(self._fields)


class LazyField:
    """Entity attribute backed by the owner's ResolvableRecord."""

    def __init__(self, doc: Optional[str] = None) -> None:
        self.__doc__ = doc
        self.name = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Any:
        if instance is None:
            return self
        return instance._record.get(self.name)

    def __set__(self, instance: Any, value: Any) -> None:
        instance._record.set(self.name, value)


def absorb(
    record: ResolvableRecord,
    cache: "IdentityCache",
    entity_id: int,
    fields: Mapping[str, Any],
    cached_until: Optional[datetime] = None,
    authenticated: bool = False,
) -> dict[str, Any]:
    """
    Merge freshly resolved fields into the identity cache, then copy the
    merged entry into the record's unset fields.

    Returns:
        The merged cache entry
    """
    entry = cache.put(entity_id, fields, cached_until, authenticated=authenticated)
    written = record.fill(entry)
    record.cached_until = cache.cached_until(entity_id) or record.cached_until
    logger.debug("%s %s resolved %d field(s)", record.kind, entity_id, len(written))
    return entry


def find_in_collection(
    cache: "CollectionCache", lookup_key: LookupKey, id_attribute: str
) -> Optional[dict[str, Any]]:
    """Look a lookup-table record up by numeric id or by a name attribute."""
    attribute, value = lookup_key
    if attribute == id_attribute:
        return cache.find_by_id(value)
    return cache.find_by(attribute, str(value))


class RecordBacked:
    """Accessors common to every entity that owns a ResolvableRecord."""

    context: "ApiContext"
    _record: ResolvableRecord

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(
            name
            for klass in cls.__mro__
            for name, value in vars(klass).items()
            if isinstance(value, LazyField)
        )

    @classmethod
    def _check_known(cls, known: Mapping[str, Any]) -> None:
        unknown = set(known) - cls.field_names()
        if unknown:
            raise TypeError(f"{cls.__name__} has no field(s): {', '.join(sorted(unknown))}")

    @property
    def lookup_key(self) -> LookupKey:
        return self._record.lookup_key

    @property
    def resolved(self) -> bool:
        return self._record.resolved

    def resolve(self):
        """Run the resolution pass now instead of on first read."""
        self._record.ensure_resolved()
        return self

    def is_cached(self, now: Optional[datetime] = None) -> bool:
        """True while the data's server-declared cache window is open."""
        expiry = self._record.cached_until
        if expiry is None:
            return False
        return expiry >= (now or datetime.now(timezone.utc))

    def as_dict(self) -> dict[str, Any]:
        """Fields known so far; never triggers resolution."""
        return self._record.snapshot()

    def __repr__(self) -> str:
        attribute, value = self._record.lookup_key
        return f"{type(self).__name__}({attribute}={value!r})"
