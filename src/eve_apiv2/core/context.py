"""
Dependencies shared by every entity: the dispatcher, the cache registry
and (optionally) the credential. Entities receive a context explicitly and
hand it, unchanged, to the entities they create.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from .auth import Credential
from .cache import CacheRegistry, get_cache_registry
from .client import ApiClient


@dataclass(frozen=True)
class ApiContext:
    client: ApiClient
    caches: CacheRegistry = field(default_factory=get_cache_registry)
    credential: Optional[Credential] = None

    def with_credential(self, credential: Optional[Credential]) -> "ApiContext":
        return replace(self, credential=credential)
