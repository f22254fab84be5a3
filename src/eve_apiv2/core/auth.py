"""
EVE API v2 Authentication

Key validation and scope resolution. A key (key id + verification code)
resolves once per process, via account/APIKeyInfo, into its type, access
mask, expiry and the characters/corporations it covers. The dispatcher
consults that scope to decide whether a conditional endpoint may see the key.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .client import EveApiError, RemoteError
from .constants import (
    AUTHENTICATION_ERROR_CODES,
    KEY_INFO_ENDPOINT,
    KEY_TYPE_CORPORATION,
    NEVER_EXPIRES,
)
from .document import Document, node_value, parse_datetime, to_int
from .logging import get_logger

if TYPE_CHECKING:
    from .cache import CacheRegistry
    from .client import ApiClient

_logger = get_logger(__name__)


class InvalidCredential(EveApiError):
    """The API does not recognise the key id / verification code pair."""

    error_type = "invalid_credential"

    def __init__(self, message: str, key_id: Optional[int] = None) -> None:
        self.key_id = key_id
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.key_id is not None:
            result["key_id"] = self.key_id
        return result


class KeyCharacter(BaseModel):
    """One character row of a key, as listed by account/APIKeyInfo."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    character_id: int = Field(description="Character ID")
    character_name: Optional[str] = Field(default=None, description="Character name")
    corporation_id: Optional[int] = Field(default=None, description="Corporation ID")
    corporation_name: Optional[str] = Field(default=None, description="Corporation name")


class KeyScope(BaseModel):
    """
    What a key grants access to.

    character_ids/corporation_ids are None when the API did not list them;
    an unknown list never grants access.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: str = Field(description="Account, Character or Corporation")
    mask: int = Field(default=0, ge=0, description="Access mask bitfield")
    expires: datetime = Field(default=NEVER_EXPIRES, description="Expiry, or NEVER_EXPIRES")
    character_ids: Optional[tuple[int, ...]] = None
    corporation_ids: Optional[tuple[int, ...]] = None
    characters: tuple[KeyCharacter, ...] = ()
    cached_until: Optional[datetime] = None

    @property
    def never_expires(self) -> bool:
        return self.expires == NEVER_EXPIRES

    def allows(self, bit: int) -> bool:
        """Check whether the access mask includes the given call bit."""
        return bool(self.mask & bit)


@dataclass(frozen=True)
class Credential:
    """
    Key id and verification code, optionally with the resolved scope.

    Usage:
        credential = resolve_credential(123, "vcode", client, caches)
        if credential.is_valid_for_character(90000001):
            ...
    """

    key_id: int
    v_code: str = field(repr=False)
    scope: Optional[KeyScope] = field(default=None, compare=False)

    def is_valid_for_character(self, character_id: int) -> bool:
        """True only if the resolved scope lists the character."""
        if self.scope is None or self.scope.character_ids is None:
            return False
        return int(character_id) in self.scope.character_ids

    def is_valid_for_corporation(self, corporation_id: int) -> bool:
        """True only if the resolved scope lists the corporation."""
        if self.scope is None or self.scope.corporation_ids is None:
            return False
        return int(corporation_id) in self.scope.corporation_ids

    @property
    def expires(self) -> Optional[datetime]:
        return self.scope.expires if self.scope is not None else None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.scope is None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.scope.expires <= now


def _scope_from_document(doc: Document, key_id: int) -> KeyScope:
    key_path = "result/key"
    kind = doc.first_value(f"{key_path}/@type")
    if not kind:
        raise InvalidCredential(f"Key {key_id} is not recognised", key_id=key_id)

    expires = NEVER_EXPIRES
    raw_expiry = doc.first_value(f"{key_path}/@expires")
    if raw_expiry:
        expires = parse_datetime(raw_expiry) or NEVER_EXPIRES

    characters: list[KeyCharacter] = []
    for row in doc.all_nodes(f"{key_path}/rowset[@name='characters']/row"):
        character_id = to_int(node_value(row, "characterID"))
        if character_id is None:
            continue
        characters.append(
            KeyCharacter(
                character_id=character_id,
                character_name=node_value(row, "characterName") or None,
                corporation_id=to_int(node_value(row, "corporationID")),
                corporation_name=node_value(row, "corporationName") or None,
            )
        )

    # Only corporation keys grant corporation-level access
    corporation_ids: Optional[tuple[int, ...]] = None
    if kind == KEY_TYPE_CORPORATION:
        corporation_ids = tuple(
            dict.fromkeys(c.corporation_id for c in characters if c.corporation_id is not None)
        )

    return KeyScope(
        kind=kind,
        mask=to_int(doc.first_value(f"{key_path}/@accessMask")) or 0,
        expires=expires,
        character_ids=tuple(c.character_id for c in characters),
        corporation_ids=corporation_ids,
        characters=tuple(characters),
        cached_until=doc.cached_until,
    )


def resolve_credential(
    key_id: int,
    v_code: str,
    client: "ApiClient",
    caches: "CacheRegistry",
) -> Credential:
    """
    Resolve a key into a scoped Credential.

    Only the first resolution of a (key_id, v_code) pair in the process
    calls the API; later ones reuse the stored scope.

    Raises:
        InvalidCredential: The API rejected the pair (never cached)
        TransportError: Network failure
        RemoteError: Any other non-success response
    """
    if key_id in (None, "") or not v_code:
        raise InvalidCredential("Must provide key_id and v_code")
    key_id = int(key_id)

    cache_key = (key_id, v_code)
    scope = caches.keys.get(cache_key)
    if scope is not None:
        _logger.debug("Key %s scope served from cache", key_id)
        return Credential(key_id, v_code, scope)

    try:
        doc = client.call(KEY_INFO_ENDPOINT, {"key_id": key_id, "v_code": v_code})
    except RemoteError as e:
        if e.status_code == 403 or e.error_code in AUTHENTICATION_ERROR_CODES:
            raise InvalidCredential(
                f"Key {key_id} rejected: {e.message}", key_id=key_id
            ) from e
        raise

    scope = _scope_from_document(doc, key_id)
    caches.keys[cache_key] = scope
    _logger.debug(
        "Key %s resolved: type=%s characters=%d", key_id, scope.kind, len(scope.characters)
    )
    return Credential(key_id, v_code, scope)
