"""
Pydantic models for row-level data parsed out of API documents.

Entities keep these in their (shared, cached) field sets, so every model
is frozen. Rows that fall outside a model's bounds are skipped by
build_row rather than failing the whole document.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.logging import get_logger

logger = get_logger(__name__)

# =============================================================================
# Base Model
# =============================================================================


class RecordModel(BaseModel):
    """Base model for immutable API rows."""

    model_config = ConfigDict(frozen=True, extra="forbid")


RowT = TypeVar("RowT", bound=RecordModel)


def build_row(model: type[RowT], **values: Any) -> Optional[RowT]:
    """
    Build one row model, or None if the row's values are out of bounds.

    Skipped rows are logged at WARNING.
    """
    try:
        return model(**values)
    except ValidationError as e:
        logger.warning(
            "Skipping %s row %r: %d invalid field(s)", model.__name__, values, e.error_count()
        )
        return None


# =============================================================================
# Character Rows
# =============================================================================


class EmploymentRecord(RecordModel):
    """One row of a character's employment history."""

    corporation_id: int = Field(ge=1, description="Corporation ID")
    start_date: datetime = Field(description="When the character joined")
    corporation_name: Optional[str] = Field(default=None, description="Corporation name")
    record_id: Optional[int] = Field(default=None, description="History row ID")


class TrainedSkill(RecordModel):
    """A skill as listed on a character sheet."""

    skill_id: int = Field(ge=1, description="Skill type ID")
    level: int = Field(ge=0, le=5, description="Trained level")
    skillpoints: int = Field(ge=0, description="Skill points trained")
    published: bool = Field(default=True, description="Skill is published")


class SkillQueueRow(RecordModel):
    """One row of char/SkillQueue."""

    position: int = Field(ge=0, description="Queue position")
    skill_id: int = Field(ge=1, description="Skill type ID")
    level: int = Field(ge=1, le=5, description="Level being trained to")
    start_sp: int = Field(ge=0, description="Skill points at start")
    end_sp: int = Field(ge=0, description="Skill points at end")
    start_time: Optional[datetime] = Field(default=None, description="Training start")
    end_time: Optional[datetime] = Field(default=None, description="Training end")


class RequiredSkill(RecordModel):
    """A prerequisite listed in the skill tree."""

    skill_id: int = Field(ge=1, description="Required skill type ID")
    level: int = Field(ge=0, le=5, description="Required level")
