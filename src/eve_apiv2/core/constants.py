"""
EVE API v2 Constants

Endpoint classification, parameter naming and other fixed values shared
by the dispatcher, the credential resolver and the entity layer.
"""

import re
from datetime import datetime, timezone

# =============================================================================
# XML API Configuration
# =============================================================================

API_BASE_URL = "https://api.eveonline.com"
API_SUFFIX = ".xml.aspx"

# Lowercase group, slash, mixed-case call name (e.g. "eve/SkillTree")
ENDPOINT_PATTERN = re.compile(r"[a-z]+/[A-Za-z]+")

# Timestamp format used by every XML API document, always UTC
API_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# =============================================================================
# Endpoints
# =============================================================================

KEY_INFO_ENDPOINT = "account/APIKeyInfo"
ALLIANCE_LIST_ENDPOINT = "eve/AllianceList"
SKILL_TREE_ENDPOINT = "eve/SkillTree"
CERTIFICATE_TREE_ENDPOINT = "eve/CertificateTree"
CHARACTER_INFO_ENDPOINT = "eve/CharacterInfo"
CHARACTER_SHEET_ENDPOINT = "char/CharacterSheet"
SKILL_QUEUE_ENDPOINT = "char/SkillQueue"
CORPORATION_SHEET_ENDPOINT = "corp/CorporationSheet"

# Never sent credentials, even if the caller supplies them
PUBLIC_ENDPOINTS = frozenset(
    {
        ALLIANCE_LIST_ENDPOINT,
        SKILL_TREE_ENDPOINT,
        CERTIFICATE_TREE_ENDPOINT,
    }
)

# Sent credentials only when the key covers the requested character
CHARACTER_SCOPED_ENDPOINTS = frozenset({CHARACTER_INFO_ENDPOINT})

# Sent credentials only when the key covers the requested corporation
CORPORATION_SCOPED_ENDPOINTS = frozenset({CORPORATION_SHEET_ENDPOINT})

# =============================================================================
# Parameter Names
#
# Library-side names are snake_case; the XML API expects its own casing.
# =============================================================================

CREDENTIAL_PARAMS = ("key_id", "v_code")

PARAM_NAMES = {
    "key_id": "keyID",
    "v_code": "vCode",
    "character_id": "characterID",
    "corporation_id": "corporationID",
    "alliance_id": "allianceID",
    "type_id": "typeID",
    "ids": "IDs",
    "names": "names",
}

# =============================================================================
# Key Types and Error Codes
# =============================================================================

KEY_TYPE_ACCOUNT = "Account"
KEY_TYPE_CHARACTER = "Character"
KEY_TYPE_CORPORATION = "Corporation"

# XML API error codes meaning "this key/vCode pair is not usable"
AUTHENTICATION_ERROR_CODES = frozenset(
    {
        202,  # API key authentication failure
        203,  # Authentication failure
        204,  # Authentication failure (final pass)
        205,  # Authentication failure (final pass)
        210,  # Authentication failure
        211,  # Login denied by account status
        212,  # Authentication failure (final pass)
        222,  # Key has expired or is disabled
        223,  # Legacy API key
    }
)

# Sorts after every real timestamp; used for keys without an expiry date
NEVER_EXPIRES = datetime.max.replace(tzinfo=timezone.utc)

# =============================================================================
# Entity Kinds
# =============================================================================

KIND_CHARACTER = "character"
KIND_CORPORATION = "corporation"
KIND_ALLIANCE = "alliance"
KIND_SKILL = "skill"
KIND_CERTIFICATE = "certificate"
