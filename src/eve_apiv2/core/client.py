"""
EVE API v2 HTTP Client

Endpoint dispatcher for the EVE Online XML API. Builds one GET per call,
applies the credential policy for the endpoint, and returns a parsed
Document. Uses httpx for connection pooling and keep-alive support.

Failures are surfaced, never retried.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import quote, urlencode

import httpx

from .config import get_settings
from .constants import (
    API_SUFFIX,
    CHARACTER_SCOPED_ENDPOINTS,
    CORPORATION_SCOPED_ENDPOINTS,
    CREDENTIAL_PARAMS,
    ENDPOINT_PATTERN,
    PARAM_NAMES,
    PUBLIC_ENDPOINTS,
)
from .document import Document, to_int

if TYPE_CHECKING:
    from .auth import Credential

logger = logging.getLogger(__name__)


# =============================================================================
# Errors
# =============================================================================


class EveApiError(Exception):
    """Base exception for every error raised by this library."""

    error_type = "eve_api_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to JSON-serializable dict."""
        return {"error": self.error_type, "message": self.message}


class InvalidEndpoint(EveApiError):
    """Endpoint name is not of the form "group/CallName"."""

    error_type = "invalid_endpoint"

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint
        super().__init__(f"Malformed endpoint name: {endpoint!r}")


class MissingCredential(EveApiError):
    """An endpoint that needs a key was called without one."""

    error_type = "missing_credential"

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint
        super().__init__(f"{endpoint} requires a key_id and v_code")


class TransportError(EveApiError):
    """Network-level failure (connection, DNS, timeout)."""

    error_type = "transport_error"

    def __init__(self, message: str, timeout: Optional[float] = None) -> None:
        self.timeout = timeout
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.timeout is not None:
            result["timeout"] = self.timeout
        return result


class RemoteError(EveApiError):
    """The API answered, but not with a usable success document."""

    error_type = "remote_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
        error_code: Optional[int] = None,
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.error_code = error_code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.status_code:
            result["status_code"] = self.status_code
        if self.error_code:
            result["error_code"] = self.error_code
        return result


# =============================================================================
# Parameter Handling
# =============================================================================


def remote_param_name(name: str) -> str:
    """
    Map a library-side parameter name to the API's casing.

    Known names come from PARAM_NAMES; anything else is camelCased with a
    trailing "Id" upper-cased (e.g. "from_id" -> "fromID").
    """
    if name in PARAM_NAMES:
        return PARAM_NAMES[name]
    head, *rest = name.split("_")
    camel = head + "".join(part[:1].upper() + part[1:] for part in rest)
    return re.sub(r"Id$", "ID", camel)


def _clean(value: Any) -> str:
    """Convert parameter values into an acceptable format for the API."""
    if isinstance(value, (list, set, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def _scope_target(params: Mapping[str, Any], name: str) -> Optional[int]:
    if name not in params:
        return None
    return to_int(_clean(params[name]))


# =============================================================================
# Client
# =============================================================================


class ApiClient:
    """
    HTTP client for XML API requests.

    Usage:
        with ApiClient() as client:
            doc = client.call("eve/SkillTree")
            doc = client.call("eve/CharacterInfo", {"character_id": 123}, credential)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Initialize XML API client.

        Args:
            base_url: API root (default: EVEAPI_BASE_URL setting)
            timeout: Per-call timeout in seconds (default: EVEAPI_TIMEOUT setting)
            transport: Optional httpx transport, mainly for tests
        """
        settings = get_settings()
        self.base_url: str = (base_url or settings.base_url).rstrip("/")
        self.timeout: float = float(timeout if timeout is not None else settings.timeout)
        self.user_agent: str = settings.user_agent
        self.last_url: Optional[str] = None

        self._transport = transport
        # Lazy-initialized httpx client for connection pooling
        self._http_client: Optional[httpx.Client] = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client (lazy initialization)."""
        if self._http_client is None:
            self._http_client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                headers={"Accept": "application/xml", "User-Agent": self.user_agent},
                transport=self._transport,
            )
        return self._http_client

    def close(self) -> None:
        """Close the underlying HTTP client and release resources."""
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[Any],
    ) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Authorization policy
    # -------------------------------------------------------------------------

    def authorize(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        credential: Optional["Credential"] = None,
    ) -> dict[str, Any]:
        """
        Apply the credential policy for an endpoint.

        Returns the library-side parameters to send: the caller's params with
        key_id/v_code either attached or stripped. When a credential is
        given, its pair replaces any key_id/v_code found in params, so the
        key that is sent is always the key the scope check ran against.

        Raises:
            MissingCredential: Endpoint needs a key and none is available
        """
        query = {k: v for k, v in (params or {}).items() if v is not None}

        supplied = {k: query.pop(k) for k in CREDENTIAL_PARAMS if k in query}
        if credential is not None:
            if supplied:
                logger.debug("Credential overrides key_id/v_code params on %s", endpoint)
            supplied = {"key_id": credential.key_id, "v_code": credential.v_code}
        has_pair = all(supplied.get(k) not in (None, "") for k in CREDENTIAL_PARAMS)

        if endpoint in PUBLIC_ENDPOINTS:
            if supplied:
                logger.debug("Stripping credentials from public endpoint %s", endpoint)
            return query

        if endpoint in CHARACTER_SCOPED_ENDPOINTS:
            target = _scope_target(query, "character_id")
            allowed = (
                has_pair
                and credential is not None
                and target is not None
                and credential.is_valid_for_character(target)
            )
        elif endpoint in CORPORATION_SCOPED_ENDPOINTS:
            target = _scope_target(query, "corporation_id")
            allowed = (
                has_pair
                and credential is not None
                and target is not None
                and credential.is_valid_for_corporation(target)
            )
        else:
            if not has_pair:
                raise MissingCredential(endpoint)
            query.update(supplied)
            return query

        if allowed:
            query.update(supplied)
        elif supplied:
            logger.debug(
                "Key does not cover %s on %s; calling unauthenticated", target, endpoint
            )
        return query

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def build_url(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """
        Build full URL with a deterministic query string.

        Args:
            endpoint: API call path (e.g., "eve/SkillTree")
            params: Library-side query parameters

        Returns:
            Full URL; query pairs sorted by their API names and percent-encoded

        Raises:
            InvalidEndpoint: If the endpoint name is malformed
        """
        if not ENDPOINT_PATTERN.fullmatch(endpoint or ""):
            raise InvalidEndpoint(endpoint)

        url = f"{self.base_url}/{endpoint}{API_SUFFIX}"
        pairs = sorted((remote_param_name(k), _clean(v)) for k, v in (params or {}).items())
        if not pairs:
            return url
        return url + "?" + urlencode(pairs, quote_via=quote)

    def call(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        credential: Optional["Credential"] = None,
    ) -> Document:
        """
        Issue one remote call.

        Args:
            endpoint: API call path (e.g., "char/CharacterSheet")
            params: Library-side query parameters (snake_case)
            credential: Key to attach where the endpoint policy allows it

        Returns:
            Parsed response document

        Raises:
            InvalidEndpoint: Malformed endpoint name (no network I/O)
            MissingCredential: Credential-requiring endpoint without a key
            TransportError: Connection failure or timeout
            RemoteError: Non-success HTTP status, API error element or bad XML
        """
        if not ENDPOINT_PATTERN.fullmatch(endpoint or ""):
            raise InvalidEndpoint(endpoint)

        query = self.authorize(endpoint, params, credential)
        url = self.build_url(endpoint, query)
        self.last_url = url

        logger.debug(
            "Calling %s (authenticated=%s)",
            endpoint,
            "key_id" in query,
            extra={"endpoint": endpoint},
        )

        try:
            response = self._get_client().get(url)
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Timed out after {self.timeout:g}s calling {endpoint}: {e}",
                timeout=self.timeout,
            ) from e
        except httpx.RequestError as e:
            raise TransportError(f"Network error calling {endpoint}: {e}") from e

        return self._parse_response(endpoint, response)

    def _parse_response(self, endpoint: str, response: httpx.Response) -> Document:
        document: Optional[Document]
        try:
            document = Document.from_bytes(response.content)
        except ET.ParseError:
            document = None

        if response.is_error:
            message = f"{endpoint} returned HTTP {response.status_code} {response.reason_phrase}"
            error_code = None
            if document is not None and document.error is not None:
                error_code, detail = document.error
                message = f"{message}: {detail}"
            logger.warning(message)
            raise RemoteError(
                message,
                status_code=response.status_code,
                reason=response.reason_phrase,
                error_code=error_code,
            )

        if document is None:
            raise RemoteError(
                f"Invalid XML response from {endpoint}", status_code=response.status_code
            )

        if document.error is not None:
            error_code, detail = document.error
            logger.warning("%s returned API error %s: %s", endpoint, error_code, detail)
            raise RemoteError(
                detail or f"{endpoint} returned an error",
                status_code=response.status_code,
                reason=response.reason_phrase,
                error_code=error_code,
            )

        return document
