"""
Lazily resolved API entities.

Every entity takes an ApiContext first; attributes not supplied at
construction are fetched on first read and shared through the identity
cache.
"""

from .alliance import Alliance, load_alliance_list
from .certificate import Certificate, load_certificate_tree
from .character import Character, QueuedSkill
from .corporation import Corporation
from .history import employment_history, infer_intervals
from .record import FieldAlreadySetError, LazyField, LookupKey, ResolvableRecord
from .skill import Skill, load_skill_tree

__all__ = [
    "Alliance",
    "Certificate",
    "Character",
    "Corporation",
    "Skill",
    "QueuedSkill",
    "FieldAlreadySetError",
    "LazyField",
    "LookupKey",
    "ResolvableRecord",
    "employment_history",
    "infer_intervals",
    "load_alliance_list",
    "load_certificate_tree",
    "load_skill_tree",
]
