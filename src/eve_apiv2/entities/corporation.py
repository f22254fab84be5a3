"""
Corporations, resolved one at a time from corp/CorporationSheet.

The sheet is public; a key that covers the corporation adds the
director-only fields (member_limit). Resolved field sets are shared
through the identity cache, so a second Corporation with the same id
costs no call. An entry fetched without a covering key is fetched again,
once, when a covering key asks for it.
"""

from __future__ import annotations

from typing import Any

from ..core.constants import CORPORATION_SHEET_ENDPOINT, KIND_CORPORATION
from ..core.context import ApiContext
from ..core.document import Document, to_float, to_int
from ..core.logging import get_logger
from .record import LazyField, LookupKey, RecordBacked, ResolvableRecord, absorb

logger = get_logger(__name__)


def parse_corporation_sheet(doc: Document) -> dict[str, Any]:
    """Harvest corporation fields from a CorporationSheet document."""
    value = doc.first_value
    return {
        "corporation_id": to_int(value("result/corporationID")),
        "name": value("result/corporationName") or None,
        "ticker": value("result/ticker") or None,
        "ceo_id": to_int(value("result/ceoID")) or None,
        "ceo_name": value("result/ceoName") or None,
        "station_id": to_int(value("result/stationID")) or None,
        "station_name": value("result/stationName") or None,
        "description": value("result/description") or None,
        "url": value("result/url") or None,
        "alliance_id": to_int(value("result/allianceID")) or None,
        "alliance_name": value("result/allianceName") or None,
        "tax_rate": to_float(value("result/taxRate")),
        "member_count": to_int(value("result/memberCount")),
        "member_limit": to_int(value("result/memberLimit")) or None,
        "shares": to_int(value("result/shares")),
    }


class Corporation(RecordBacked):
    """
    A player or NPC corporation.

    start_date/end_date are only present on corporations produced from a
    character's employment history.
    """

    corporation_id = LazyField("Corporation ID")
    name = LazyField("Corporation name")
    ticker = LazyField("Corporation ticker")
    ceo_id = LazyField("CEO character ID")
    ceo_name = LazyField("CEO name")
    station_id = LazyField("Headquarters station ID")
    station_name = LazyField("Headquarters station name")
    description = LazyField("Corporation description")
    url = LazyField("Corporation website")
    alliance_id = LazyField("Alliance ID, if any")
    alliance_name = LazyField("Alliance name, if any")
    alliance = LazyField("Alliance entity, if any (resolved lazily)")
    tax_rate = LazyField("Tax rate")
    member_count = LazyField("Number of members")
    member_limit = LazyField("Member limit (requires a covering key)")
    shares = LazyField("Number of shares")
    start_date = LazyField("Employment start (employment history only)")
    end_date = LazyField("Employment end (employment history only)")

    def __init__(self, context: ApiContext, corporation_id: int, **known: Any) -> None:
        self._check_known(known)
        corporation_id = int(corporation_id)
        self.context = context
        self._record = ResolvableRecord(
            KIND_CORPORATION,
            LookupKey("corporation_id", corporation_id),
            self._resolve,
            {"corporation_id": corporation_id, **known},
        )

    @property
    def is_covered(self) -> bool:
        """Whether the context's key grants director access to this corporation."""
        credential = self.context.credential
        return credential is not None and credential.is_valid_for_corporation(
            self._record.lookup_key.value
        )

    def _resolve(self, record: ResolvableRecord) -> None:
        corporation_id = record.lookup_key.value
        cache = self.context.caches.identity(KIND_CORPORATION)
        covered = self.is_covered

        if cache.has(corporation_id) and (cache.is_authenticated(corporation_id) or not covered):
            logger.debug("Corporation %s served from identity cache", corporation_id)
            absorb(record, cache, corporation_id, {})
        else:
            doc = self.context.client.call(
                CORPORATION_SHEET_ENDPOINT,
                {"corporation_id": corporation_id},
                self.context.credential,
            )
            fields = parse_corporation_sheet(doc)
            fields["corporation_id"] = corporation_id
            absorb(
                record, cache, corporation_id, fields, doc.cached_until, authenticated=covered
            )

        alliance_id = record.peek("alliance_id")
        if alliance_id and not record.has("alliance"):
            from .alliance import Alliance

            record.set(
                "alliance",
                Alliance(self.context, alliance_id=alliance_id, name=record.peek("alliance_name")),
            )
