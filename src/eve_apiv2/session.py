"""
Entry point for applications: resolve a key, then walk its entities.

    with new_session(123456, "vCode") as session:
        for pilot in session.characters():
            print(pilot.name, pilot.corporation.ticker)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from .core.auth import Credential, resolve_credential
from .core.cache import CacheRegistry, get_cache_registry
from .core.client import ApiClient
from .core.constants import KEY_TYPE_CORPORATION
from .core.context import ApiContext
from .core.logging import get_logger
from .entities.alliance import Alliance
from .entities.character import Character
from .entities.corporation import Corporation

logger = get_logger(__name__)


class Session:
    """
    An account view over one resolved key.

    The session owns its client only when new_session created it; closing
    the session then closes the client.
    """

    def __init__(self, credential: Credential, context: ApiContext, owns_client: bool = False):
        self.credential = credential
        self.context = context
        self._owns_client = owns_client

    # -------------------------------------------------------------------------
    # Key scope
    # -------------------------------------------------------------------------

    @property
    def key_id(self) -> int:
        return self.credential.key_id

    @property
    def key_type(self) -> Optional[str]:
        return self.credential.scope.kind if self.credential.scope else None

    @property
    def mask(self) -> int:
        return self.credential.scope.mask if self.credential.scope else 0

    @property
    def expires(self) -> Optional[datetime]:
        return self.credential.expires

    @property
    def cached_until(self) -> Optional[datetime]:
        return self.credential.scope.cached_until if self.credential.scope else None

    def is_cached(self, now: Optional[datetime] = None) -> bool:
        """True while the key info's cache window is open."""
        if self.cached_until is None:
            return False
        return self.cached_until >= (now or datetime.now(timezone.utc))

    # -------------------------------------------------------------------------
    # Entities
    # -------------------------------------------------------------------------

    def characters(self) -> list[Character]:
        """Characters on the key, pre-filled from the key info (no call)."""
        scope = self.credential.scope
        if scope is None:
            return []
        return [
            Character(
                self.context,
                character_id=row.character_id,
                name=row.character_name,
                corporation_id=row.corporation_id,
                corporation_name=row.corporation_name,
            )
            for row in scope.characters
        ]

    def corporations(self) -> list[Corporation]:
        """The corporation a Corporation key belongs to; empty for other keys."""
        scope = self.credential.scope
        if scope is None or scope.kind != KEY_TYPE_CORPORATION:
            return []

        names = {row.corporation_id: row.corporation_name for row in scope.characters}
        return [
            Corporation(self.context, corporation_id=corp_id, name=names.get(corp_id))
            for corp_id in scope.corporation_ids or ()
        ]

    def alliances(self) -> list[Alliance]:
        """Every alliance in the public directory."""
        return Alliance.all(self.context)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        if self._owns_client:
            self.context.client.close()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Session(key_id={self.key_id!r}, key_type={self.key_type!r})"


def new_session(
    key_id: int,
    v_code: str,
    client: Optional[ApiClient] = None,
    caches: Optional[CacheRegistry] = None,
) -> Session:
    """
    Resolve a key and open a session on it.

    Args:
        key_id: API key id
        v_code: Verification code
        client: Dispatcher to use (default: a new ApiClient owned by the session)
        caches: Cache registry (default: the process-wide registry)

    Raises:
        InvalidCredential: The API rejected the key
        TransportError: Network failure
        RemoteError: Any other non-success response
    """
    owns_client = client is None
    client = client if client is not None else ApiClient()
    caches = caches if caches is not None else get_cache_registry()

    try:
        credential = resolve_credential(key_id, v_code, client, caches)
    except Exception:
        if owns_client:
            client.close()
        raise

    logger.debug("Session opened for key %s (%s)", credential.key_id, credential.scope.kind)
    context = ApiContext(client=client, caches=caches, credential=credential)
    return Session(credential, context, owns_client=owns_client)
