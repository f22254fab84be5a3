"""
Skills from the eve/SkillTree lookup table.

The whole tree is fetched the first time any skill needs resolving and is
kept for the life of the process. Skills can be looked up by type id or by
name (case-insensitive).
"""

from __future__ import annotations

from typing import Any, Optional

from ..core.cache import CollectionCache
from ..core.constants import KIND_SKILL, SKILL_TREE_ENDPOINT
from ..core.context import ApiContext
from ..core.document import node_value, to_int
from ..core.logging import get_logger
from ..models.records import RequiredSkill, build_row
from .record import (
    LazyField,
    LookupKey,
    RecordBacked,
    ResolvableRecord,
    absorb,
    find_in_collection,
)

logger = get_logger(__name__)


def load_skill_tree(context: ApiContext) -> CollectionCache:
    """Ensure the skill tree is cached; returns the collection."""
    cache = context.caches.collection(KIND_SKILL)

    def loader(target: CollectionCache) -> None:
        doc = context.client.call(SKILL_TREE_ENDPOINT, credential=context.credential)
        groups = target.table("groups")
        cached_until = doc.cached_until

        for group in doc.all_nodes("result/rowset[@name='skillGroups']/row"):
            group_id = to_int(node_value(group, "groupID"))
            group_name = node_value(group, "groupName")
            if group_id is not None and group_name:
                groups[group_id] = group_name

            for row in group.findall("rowset[@name='skills']/row"):
                skill_id = to_int(node_value(row, "typeID"))
                if skill_id is None:
                    continue
                skill_group = to_int(node_value(row, "groupID")) or group_id
                required = []
                for req in row.findall("rowset[@name='requiredSkills']/row"):
                    req_id = to_int(node_value(req, "typeID"))
                    if req_id is None:
                        continue
                    prerequisite = build_row(
                        RequiredSkill,
                        skill_id=req_id,
                        level=to_int(node_value(req, "skillLevel")) or 0,
                    )
                    if prerequisite is not None:
                        required.append(prerequisite)

                target.put(
                    skill_id,
                    {
                        "skill_id": skill_id,
                        "name": node_value(row, "typeName"),
                        "description": node_value(row, "description") or None,
                        "rank": to_int(node_value(row, "rank")),
                        "published": node_value(row, "published") == "1",
                        "group_id": skill_group,
                        "group_name": groups.get(skill_group) if skill_group else None,
                        "primary_attribute": node_value(
                            row, "requiredAttributes/primaryAttribute"
                        )
                        or None,
                        "secondary_attribute": node_value(
                            row, "requiredAttributes/secondaryAttribute"
                        )
                        or None,
                        "required_skills": tuple(required),
                    },
                    cached_until,
                )
        target.loaded_until = cached_until

    cache.ensure_loaded(loader)
    return cache


class Skill(RecordBacked):
    """
    A skill type.

    level and skillpoints_trained only exist on skills handed out by
    Character.skills(); they are never fetched.

    Usage:
        gunnery = Skill(context, name="gunnery")
        gunnery.skill_id     # 3300, after one eve/SkillTree call
    """

    skill_id = LazyField("CCP type ID of the skill")
    name = LazyField("Skill name")
    description = LazyField("Skill description")
    rank = LazyField("Training time multiplier")
    published = LazyField("Whether the skill is published")
    group_id = LazyField("Skill group ID")
    group_name = LazyField("Skill group name")
    primary_attribute = LazyField("Primary training attribute")
    secondary_attribute = LazyField("Secondary training attribute")
    required_skills = LazyField("Tuple of RequiredSkill prerequisites")
    level = LazyField("Trained level, or required level for prerequisites")
    skillpoints_trained = LazyField("Skill points trained (character skills only)")

    def __init__(
        self,
        context: ApiContext,
        skill_id: Optional[int] = None,
        name: Optional[str] = None,
        **known: Any,
    ) -> None:
        if skill_id is None and not name:
            raise ValueError("Skill needs a skill_id or a name")
        self._check_known(known)

        lookup = (
            LookupKey("skill_id", int(skill_id))
            if skill_id is not None
            else LookupKey("name", name)
        )
        self.context = context
        self._record = ResolvableRecord(
            KIND_SKILL,
            lookup,
            self._resolve,
            {"skill_id": lookup.value if skill_id is not None else None, "name": name, **known},
        )

    def _resolve(self, record: ResolvableRecord) -> None:
        cache = load_skill_tree(self.context)
        entry = find_in_collection(cache, record.lookup_key, "skill_id")
        if entry is None:
            logger.debug("No skill matches %s=%r", *record.lookup_key)
            record.cached_until = cache.loaded_until
            return
        absorb(record, cache, entry["skill_id"], entry)

    def prerequisites(self) -> list["Skill"]:
        """Prerequisite skills, each carrying the required level."""
        return [
            Skill(self.context, skill_id=req.skill_id, level=req.level)
            for req in self.required_skills or ()
        ]

    @classmethod
    def all(cls, context: ApiContext) -> list["Skill"]:
        """Every skill in the tree, ordered by type id."""
        cache = load_skill_tree(context)
        return [cls(context, skill_id=skill_id) for skill_id in cache.ids()]
