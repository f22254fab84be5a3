"""
EVE API v2 - Lazy object model over the EVE Online XML API

Entities (characters, corporations, alliances, skills, certificates)
fetch their attributes on first read and share what they learn through a
process-wide identity cache.

Usage:
    from eve_apiv2 import new_session

    with new_session(123456, "verification-code") as session:
        for pilot in session.characters():
            print(pilot.name, pilot.corporation.name)
            for corp in pilot.corporations():
                print("  ", corp.name, corp.start_date, corp.end_date)

Package structure:
    eve_apiv2/
    ├── core/           # Shared infrastructure
    │   ├── client.py   # Endpoint dispatcher (httpx)
    │   ├── auth.py     # Credential and key scope
    │   ├── cache.py    # Identity cache
    │   └── document.py # XML response access
    ├── entities/       # Lazily resolved entities
    ├── models/         # Row-level data structures
    └── session.py      # Key-level entry point
"""

__version__ = "1.0.0"

# Re-export commonly used classes for convenience
from .core import (
    ApiClient,
    ApiContext,
    Credential,
    EveApiError,
    InvalidCredential,
    InvalidEndpoint,
    MissingCredential,
    RemoteError,
    TransportError,
)
from .entities import Alliance, Certificate, Character, Corporation, Skill
from .session import Session, new_session

__all__ = [
    "__version__",
    "new_session",
    "Session",
    "ApiClient",
    "ApiContext",
    "Credential",
    "Alliance",
    "Certificate",
    "Character",
    "Corporation",
    "Skill",
    "EveApiError",
    "InvalidCredential",
    "InvalidEndpoint",
    "MissingCredential",
    "RemoteError",
    "TransportError",
]
