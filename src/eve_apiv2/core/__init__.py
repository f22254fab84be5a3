"""
EVE API v2 Core Infrastructure

Dispatcher, credential scope, identity cache, configuration and logging.
"""

from .auth import Credential, InvalidCredential, KeyCharacter, KeyScope, resolve_credential
from .cache import (
    CacheRegistry,
    CollectionCache,
    IdentityCache,
    get_cache_registry,
    reset_cache_registry,
)
from .client import (
    ApiClient,
    EveApiError,
    InvalidEndpoint,
    MissingCredential,
    RemoteError,
    TransportError,
    remote_param_name,
)
from .config import ApiSettings, get_settings, reset_settings
from .constants import NEVER_EXPIRES
from .context import ApiContext
from .document import Document, parse_datetime
from .logging import get_logger

__all__ = [
    # Client
    "ApiClient",
    "remote_param_name",
    # Errors
    "EveApiError",
    "InvalidEndpoint",
    "MissingCredential",
    "TransportError",
    "RemoteError",
    "InvalidCredential",
    # Auth
    "Credential",
    "KeyCharacter",
    "KeyScope",
    "resolve_credential",
    "NEVER_EXPIRES",
    # Cache
    "CacheRegistry",
    "CollectionCache",
    "IdentityCache",
    "get_cache_registry",
    "reset_cache_registry",
    # Context
    "ApiContext",
    # Documents
    "Document",
    "parse_datetime",
    # Config / logging
    "ApiSettings",
    "get_settings",
    "reset_settings",
    "get_logger",
]
