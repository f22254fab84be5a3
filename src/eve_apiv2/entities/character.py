"""
Characters, resolved from up to two documents in one pass:

- eve/CharacterInfo, public; a key covering the character adds the
  private fields (balance, skill points, ship, location).
- char/CharacterSheet, only called when the key covers the character;
  adds gender, birth date, clone, trained skills and certificates.

The merged field set goes into the identity cache only after every call
of the pass succeeded.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..core.constants import (
    CHARACTER_INFO_ENDPOINT,
    CHARACTER_SHEET_ENDPOINT,
    KIND_CHARACTER,
    SKILL_QUEUE_ENDPOINT,
)
from ..core.context import ApiContext
from ..core.document import Document, node_value, parse_datetime, to_float, to_int
from ..core.logging import get_logger
from ..models.records import EmploymentRecord, SkillQueueRow, TrainedSkill, build_row
from .alliance import Alliance
from .certificate import Certificate
from .corporation import Corporation
from .history import employment_history
from .record import LazyField, LookupKey, RecordBacked, ResolvableRecord, absorb
from .skill import Skill

logger = get_logger(__name__)


# =============================================================================
# Document Parsing
# =============================================================================


def parse_employment(doc: Document) -> tuple[EmploymentRecord, ...]:
    """
    Employment rows of a CharacterInfo document.

    Rows without a usable corporation id or start date cannot be placed
    on the timeline and are dropped.
    """
    records = []
    for row in doc.rowset("employmentHistory"):
        corporation_id = to_int(node_value(row, "corporationID"))
        start_date = parse_datetime(node_value(row, "startDate"))
        if corporation_id is None or start_date is None:
            logger.warning(
                "Skipping employment row with corporation=%r startDate=%r",
                node_value(row, "corporationID"),
                node_value(row, "startDate"),
            )
            continue
        record = build_row(
            EmploymentRecord,
            corporation_id=corporation_id,
            start_date=start_date,
            corporation_name=node_value(row, "corporationName") or None,
            record_id=to_int(node_value(row, "recordID")),
        )
        if record is not None:
            records.append(record)
    return tuple(records)


def parse_character_info(doc: Document) -> dict[str, Any]:
    """Harvest character fields from a CharacterInfo document."""
    value = doc.first_value
    return {
        "character_id": to_int(value("result/characterID")),
        "name": value("result/characterName") or None,
        "race": value("result/race") or None,
        "bloodline": value("result/bloodline") or None,
        "ancestry": value("result/ancestry") or None,
        "corporation_id": to_int(value("result/corporationID")) or None,
        "corporation_name": value("result/corporation") or None,
        "corporation_date": parse_datetime(value("result/corporationDate")),
        "alliance_id": to_int(value("result/allianceID")) or None,
        "alliance_name": value("result/alliance") or None,
        "security_status": to_float(value("result/securityStatus")),
        # Present only when the key covers the character
        "balance": to_float(value("result/accountBalance")),
        "skill_points": to_int(value("result/skillPoints")),
        "ship_name": value("result/shipName") or None,
        "ship_type_name": value("result/shipTypeName") or None,
        "last_known_location": value("result/lastKnownLocation") or None,
        "employment_history": parse_employment(doc),
    }


def parse_character_sheet(doc: Document) -> dict[str, Any]:
    """Harvest character fields from a CharacterSheet document."""
    value = doc.first_value

    skills = []
    for row in doc.rowset("skills"):
        skill_id = to_int(node_value(row, "typeID"))
        if skill_id is None:
            continue
        trained = build_row(
            TrainedSkill,
            skill_id=skill_id,
            level=to_int(node_value(row, "level")) or 0,
            skillpoints=to_int(node_value(row, "skillpoints")) or 0,
            published=node_value(row, "published") != "0",
        )
        if trained is not None:
            skills.append(trained)

    certificate_ids = []
    for row in doc.rowset("certificates"):
        certificate_id = to_int(node_value(row, "certificateID"))
        if certificate_id is not None:
            certificate_ids.append(certificate_id)

    return {
        "character_id": to_int(value("result/characterID")),
        "name": value("result/name") or None,
        "dob": parse_datetime(value("result/DoB")),
        "race": value("result/race") or None,
        "bloodline": value("result/bloodLine") or None,
        "ancestry": value("result/ancestry") or None,
        "gender": value("result/gender") or None,
        "corporation_id": to_int(value("result/corporationID")) or None,
        "corporation_name": value("result/corporationName") or None,
        "alliance_id": to_int(value("result/allianceID")) or None,
        "alliance_name": value("result/allianceName") or None,
        "clone_name": value("result/cloneName") or None,
        "clone_skill_points": to_int(value("result/cloneSkillPoints")),
        "balance": to_float(value("result/balance")),
        "trained_skills": tuple(skills),
        "certificate_ids": tuple(certificate_ids),
    }


def _merge_missing(target: dict[str, Any], extra: dict[str, Any]) -> None:
    for name, value in extra.items():
        if value is not None and target.get(name) is None:
            target[name] = value


# =============================================================================
# Entities
# =============================================================================


@dataclass(frozen=True)
class QueuedSkill:
    """One skill queue entry, pointing at a lazily resolved Skill."""

    skill: Skill
    position: int
    level: int
    start_sp: int
    end_sp: int
    start_time: Optional[datetime]
    end_time: Optional[datetime]


class Character(RecordBacked):
    """
    A pilot.

    Usage:
        pilot = Character(context, character_id=90000001, name="Known Name")
        pilot.name          # no call: supplied at construction
        pilot.race          # one resolution pass (one or two calls)
        for corp in pilot.corporations():
            print(corp.name, corp.start_date, corp.end_date)
    """

    character_id = LazyField("Character ID")
    name = LazyField("Character name")
    race = LazyField("Race")
    bloodline = LazyField("Bloodline")
    ancestry = LazyField("Ancestry")
    gender = LazyField("Gender (requires a covering key)")
    dob = LazyField("Date of birth (requires a covering key)")
    corporation_id = LazyField("Current corporation ID")
    corporation_name = LazyField("Current corporation name")
    corporation_date = LazyField("When the current corporation was joined")
    corporation = LazyField("Current Corporation entity")
    alliance_id = LazyField("Current alliance ID, if any")
    alliance_name = LazyField("Current alliance name, if any")
    alliance = LazyField("Current Alliance entity, if any")
    security_status = LazyField("Security status")
    balance = LazyField("Wallet balance (requires a covering key)")
    skill_points = LazyField("Total skill points (requires a covering key)")
    ship_name = LazyField("Current ship name (requires a covering key)")
    ship_type_name = LazyField("Current ship type (requires a covering key)")
    last_known_location = LazyField("Last known location (requires a covering key)")
    clone_name = LazyField("Clone grade (requires a covering key)")
    clone_skill_points = LazyField("Clone skill points (requires a covering key)")
    employment_history = LazyField("Tuple of EmploymentRecord rows")
    trained_skills = LazyField("Tuple of TrainedSkill rows (requires a covering key)")
    certificate_ids = LazyField("Tuple of certificate IDs (requires a covering key)")

    def __init__(self, context: ApiContext, character_id: int, **known: Any) -> None:
        self._check_known(known)
        character_id = int(character_id)
        self.context = context
        self._skill_queue: Optional[list[QueuedSkill]] = None
        self._record = ResolvableRecord(
            KIND_CHARACTER,
            LookupKey("character_id", character_id),
            self._resolve,
            {"character_id": character_id, **known},
        )

    @property
    def is_covered(self) -> bool:
        """Whether the context's key grants private access to this character."""
        credential = self.context.credential
        return credential is not None and credential.is_valid_for_character(
            self._record.lookup_key.value
        )

    def _resolve(self, record: ResolvableRecord) -> None:
        character_id = record.lookup_key.value
        cache = self.context.caches.identity(KIND_CHARACTER)
        covered = self.is_covered

        if cache.has(character_id) and (cache.is_authenticated(character_id) or not covered):
            logger.debug("Character %s served from identity cache", character_id)
            absorb(record, cache, character_id, {})
        else:
            fields, cached_until = self._fetch(character_id, covered)
            absorb(record, cache, character_id, fields, cached_until, authenticated=covered)

        self._link(record)

    def _fetch(self, character_id: int, covered: bool) -> tuple[dict[str, Any], Optional[datetime]]:
        """Call every endpoint of the pass before anything is cached."""
        credential = self.context.credential
        info = self.context.client.call(
            CHARACTER_INFO_ENDPOINT, {"character_id": character_id}, credential
        )
        fields = parse_character_info(info)
        cached_until = info.cached_until

        if covered:
            sheet = self.context.client.call(
                CHARACTER_SHEET_ENDPOINT, {"character_id": character_id}, credential
            )
            _merge_missing(fields, parse_character_sheet(sheet))

        fields["character_id"] = character_id
        return fields, cached_until

    def _link(self, record: ResolvableRecord) -> None:
        """Attach sub-entities for the ids the pass produced."""
        corporation_id = record.peek("corporation_id")
        if corporation_id and not record.has("corporation"):
            record.set(
                "corporation",
                Corporation(
                    self.context,
                    corporation_id=corporation_id,
                    name=record.peek("corporation_name"),
                ),
            )
        alliance_id = record.peek("alliance_id")
        if alliance_id and not record.has("alliance"):
            record.set(
                "alliance",
                Alliance(self.context, alliance_id=alliance_id, name=record.peek("alliance_name")),
            )

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------

    def corporations(self) -> list[Corporation]:
        """Employment history, most recent first, with start/end dates."""
        return employment_history(self.context, self.employment_history or ())

    def skills(self) -> list[Skill]:
        """Trained skills carrying level and skill points (needs a covering key)."""
        return [
            Skill(
                self.context,
                skill_id=trained.skill_id,
                level=trained.level,
                skillpoints_trained=trained.skillpoints,
            )
            for trained in self.trained_skills or ()
        ]

    def certificates(self) -> list[Certificate]:
        """Granted certificates (needs a covering key)."""
        return [
            Certificate(self.context, certificate_id=certificate_id)
            for certificate_id in self.certificate_ids or ()
        ]

    def skill_queue(self) -> list[QueuedSkill]:
        """
        The character's training queue, fetched once per instance.

        Raises:
            MissingCredential: The context carries no key
        """
        if self._skill_queue is not None:
            return self._skill_queue

        doc = self.context.client.call(
            SKILL_QUEUE_ENDPOINT,
            {"character_id": self._record.lookup_key.value},
            self.context.credential,
        )
        rows = []
        for row in doc.rowset("skillqueue"):
            skill_id = to_int(node_value(row, "typeID"))
            if skill_id is None:
                continue
            queued = build_row(
                SkillQueueRow,
                position=to_int(node_value(row, "queuePosition")) or 0,
                skill_id=skill_id,
                level=to_int(node_value(row, "level")) or 1,
                start_sp=to_int(node_value(row, "startSP")) or 0,
                end_sp=to_int(node_value(row, "endSP")) or 0,
                start_time=parse_datetime(node_value(row, "startTime")),
                end_time=parse_datetime(node_value(row, "endTime")),
            )
            if queued is not None:
                rows.append(queued)

        self._skill_queue = [
            QueuedSkill(
                skill=Skill(self.context, skill_id=row.skill_id),
                position=row.position,
                level=row.level,
                start_sp=row.start_sp,
                end_sp=row.end_sp,
                start_time=row.start_time,
                end_time=row.end_time,
            )
            for row in sorted(rows, key=lambda r: r.position)
        ]
        return self._skill_queue
