"""
EVE API v2 Models

Immutable row models parsed from API documents.
"""

from eve_apiv2.models.records import (
    EmploymentRecord,
    RecordModel,
    RequiredSkill,
    SkillQueueRow,
    TrainedSkill,
    build_row,
)

__all__ = [
    "RecordModel",
    "EmploymentRecord",
    "RequiredSkill",
    "SkillQueueRow",
    "TrainedSkill",
    "build_row",
]
