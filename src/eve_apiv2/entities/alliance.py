"""
Alliances from the eve/AllianceList directory.

The directory is a public lookup table: fetched once per process, never
with credentials. Alliances can be looked up by id, by name or by ticker
(short name), both case-insensitive.
"""

from __future__ import annotations

from typing import Any, Optional

from ..core.cache import CollectionCache
from ..core.constants import ALLIANCE_LIST_ENDPOINT, KIND_ALLIANCE
from ..core.context import ApiContext
from ..core.document import node_value, parse_datetime, to_int
from ..core.logging import get_logger
from .corporation import Corporation
from .record import (
    LazyField,
    LookupKey,
    RecordBacked,
    ResolvableRecord,
    absorb,
    find_in_collection,
)

logger = get_logger(__name__)


def load_alliance_list(context: ApiContext) -> CollectionCache:
    """Ensure the alliance directory is cached; returns the collection."""
    cache = context.caches.collection(KIND_ALLIANCE)

    def loader(target: CollectionCache) -> None:
        doc = context.client.call(ALLIANCE_LIST_ENDPOINT, credential=context.credential)
        cached_until = doc.cached_until

        for row in doc.all_nodes("result/rowset[@name='alliances']/row"):
            alliance_id = to_int(node_value(row, "allianceID"))
            if alliance_id is None:
                continue
            members = []
            for member in row.findall("rowset[@name='memberCorporations']/row"):
                corp_id = to_int(node_value(member, "corporationID"))
                if corp_id is not None:
                    members.append(corp_id)

            target.put(
                alliance_id,
                {
                    "alliance_id": alliance_id,
                    "name": node_value(row, "name"),
                    "short_name": node_value(row, "shortName"),
                    "executor_id": to_int(node_value(row, "executorCorpID")) or None,
                    "member_count": to_int(node_value(row, "memberCount")),
                    "founded": parse_datetime(node_value(row, "startDate")),
                    "member_corporation_ids": tuple(members),
                },
                cached_until,
            )
        target.loaded_until = cached_until

    cache.ensure_loaded(loader)
    return cache


class Alliance(RecordBacked):
    """
    A player alliance.

    Usage:
        alliance = Alliance(context, short_name="test")
        alliance.executor.name   # executor Corporation resolves on its own
    """

    alliance_id = LazyField("Alliance ID")
    name = LazyField("Alliance name")
    short_name = LazyField("Alliance ticker")
    executor_id = LazyField("Executor corporation ID")
    executor = LazyField("Executor Corporation (resolved lazily)")
    member_count = LazyField("Number of member pilots")
    founded = LazyField("Founding datetime (UTC)")
    member_corporation_ids = LazyField("Tuple of member corporation IDs")

    def __init__(
        self,
        context: ApiContext,
        alliance_id: Optional[int] = None,
        name: Optional[str] = None,
        short_name: Optional[str] = None,
        **known: Any,
    ) -> None:
        self._check_known(known)
        if alliance_id is not None:
            lookup = LookupKey("alliance_id", int(alliance_id))
        elif name:
            lookup = LookupKey("name", name)
        elif short_name:
            lookup = LookupKey("short_name", short_name)
        else:
            raise ValueError("Alliance needs an alliance_id, name or short_name")

        self.context = context
        self._record = ResolvableRecord(
            KIND_ALLIANCE,
            lookup,
            self._resolve,
            {
                "alliance_id": int(alliance_id) if alliance_id is not None else None,
                "name": name,
                "short_name": short_name,
                **known,
            },
        )

    def _resolve(self, record: ResolvableRecord) -> None:
        cache = load_alliance_list(self.context)
        entry = find_in_collection(cache, record.lookup_key, "alliance_id")
        if entry is None:
            logger.debug("No alliance matches %s=%r", *record.lookup_key)
            record.cached_until = cache.loaded_until
            return
        absorb(record, cache, entry["alliance_id"], entry)

        executor_id = record.peek("executor_id")
        if executor_id and not record.has("executor"):
            record.set("executor", Corporation(self.context, corporation_id=executor_id))

    def member_corporations(self) -> list[Corporation]:
        """Member corporations, unresolved until read."""
        return [
            Corporation(self.context, corporation_id=corp_id, alliance_id=self.alliance_id)
            for corp_id in self.member_corporation_ids or ()
        ]

    @classmethod
    def all(cls, context: ApiContext) -> list["Alliance"]:
        """Every alliance in the directory, ordered by id."""
        cache = load_alliance_list(context)
        return [cls(context, alliance_id=alliance_id) for alliance_id in cache.ids()]
