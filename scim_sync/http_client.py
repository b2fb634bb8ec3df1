"""HTTP transport for the remote SCIM provisioning endpoint.

Built on ``requests``.  Two layers are exposed:

- Verb methods (``get``/``post``/``put``/``delete``) that return a
  normalized ``SCIMResponse`` whatever the status code.
- Resource methods (``create_user``, ``replace_group``, ...) that resolve the
  endpoint from the bundled ResourceType documents, return the parsed
  resource, and raise ``SCIMError`` on any non-2xx status.

Key behaviors:
- Automatic 429 Too Many Requests retry with Retry-After header support
- Bearer token or HTTP Basic authentication
- TLS options: skip verification (self-signed endpoints), custom CA bundle
- ``redact_auth()`` helper for safe logging of headers
"""

import json
import logging
import time
from typing import Any, Dict, Optional

import requests

from .errors import SCIMError
from .schemas import URN_ERROR, resource_types

logger = logging.getLogger(__name__)

SCIM_CONTENT_TYPE = "application/scim+json"

# Retry policy for 429 Too Many Requests (RFC 6585)
_MAX_RETRIES = 3
_DEFAULT_RETRY_AFTER = 2  # seconds, used when Retry-After header is missing


class SCIMResponse:
    """Normalized HTTP response wrapper."""

    def __init__(self, status_code: int, headers: Dict[str, str], body: str):
        self.status_code = status_code
        self.headers = headers
        self.body = body
        self._json = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Parse and cache the response body as JSON."""
        if self._json is None:
            self._json = json.loads(self.body) if self.body else None
        return self._json

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lower = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lower:
                return v
        return None


class SCIMClient:
    """HTTP client for one SCIM 2.0 service provider.

    Args:
        base_url:       Root URL of the SCIM endpoint (e.g. ``https://example.com/scim/v2``)
        token:          Bearer token for authentication
        username:       Username for HTTP Basic authentication (used when no token)
        password:       Password for HTTP Basic authentication
        tls_no_verify:  Skip TLS certificate verification (for self-signed certs)
        timeout:        Per-request timeout in seconds
        proxy:          HTTP/HTTPS proxy URL
        ca_bundle:      Path to custom CA certificate bundle file
        session:        Optional ``requests.Session`` to send requests through
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        tls_no_verify: bool = False,
        timeout: int = 30,
        proxy: Optional[str] = None,
        ca_bundle: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip(" /")
        self.token = token
        self.username = username
        self.password = password
        self.tls_no_verify = tls_no_verify
        self.timeout = timeout
        self.proxy = proxy
        self.ca_bundle = ca_bundle
        self.session = session or requests.Session()
        self.resource_types = {rt["name"]: rt for rt in resource_types(self.base_url)}

    # -- Verb API ------------------------------------------------------------

    def get(self, path: str) -> SCIMResponse:
        """Send a GET request to the SCIM endpoint."""
        return self._request("GET", path)

    def post(self, path: str, payload: Dict[str, Any]) -> SCIMResponse:
        """Send a POST request with a JSON payload."""
        return self._request("POST", path, payload)

    def put(self, path: str, payload: Dict[str, Any]) -> SCIMResponse:
        """Send a PUT request with a JSON payload."""
        return self._request("PUT", path, payload)

    def delete(self, path: str) -> SCIMResponse:
        """Send a DELETE request."""
        return self._request("DELETE", path)

    # -- Resource API --------------------------------------------------------

    def service_provider_config(self) -> Dict[str, Any]:
        return self._expect("GET", "/ServiceProviderConfig", self.get("/ServiceProviderConfig"))

    def create_user(self, user: Dict[str, Any]) -> Dict[str, Any]:
        return self._create("User", user)

    def read_user(self, user_id: str) -> Dict[str, Any]:
        return self._read("User", user_id)

    def replace_user(self, user_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
        return self._replace("User", user_id, user)

    def delete_user(self, user_id: str) -> None:
        self._delete("User", user_id)

    def create_group(self, group: Dict[str, Any]) -> Dict[str, Any]:
        return self._create("Group", group)

    def read_group(self, group_id: str) -> Dict[str, Any]:
        return self._read("Group", group_id)

    def replace_group(self, group_id: str, group: Dict[str, Any]) -> Dict[str, Any]:
        return self._replace("Group", group_id, group)

    def delete_group(self, group_id: str) -> None:
        self._delete("Group", group_id)

    # -- Internals -----------------------------------------------------------

    def endpoint(self, resource_type: str) -> str:
        """Return the endpoint path for ``resource_type`` (e.g. ``/Users``)."""
        return self.resource_types[resource_type]["endpoint"]

    def _create(self, resource_type: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        path = self.endpoint(resource_type)
        return self._expect("POST", path, self.post(path, payload))

    def _read(self, resource_type: str, resource_id: str) -> Dict[str, Any]:
        path = f"{self.endpoint(resource_type)}/{resource_id}"
        return self._expect("GET", path, self.get(path))

    def _replace(self, resource_type: str, resource_id: str,
                 payload: Dict[str, Any]) -> Dict[str, Any]:
        path = f"{self.endpoint(resource_type)}/{resource_id}"
        return self._expect("PUT", path, self.put(path, payload))

    def _delete(self, resource_type: str, resource_id: str) -> None:
        path = f"{self.endpoint(resource_type)}/{resource_id}"
        self._expect("DELETE", path, self.delete(path))

    def _expect(self, method: str, path: str, resp: SCIMResponse) -> Any:
        """Return the parsed body of a 2xx response, or raise ``SCIMError``."""
        if resp.ok:
            try:
                return resp.json()
            except ValueError:
                raise SCIMError(resp.status_code, "Response body is not valid JSON",
                                method=method, path=path)
        raise _error_from_response(method, path, resp)

    def _build_headers(self) -> Dict[str, str]:
        """Build the default SCIM request headers with auth credentials."""
        headers = {
            "Accept": SCIM_CONTENT_TYPE,
            "Content-Type": SCIM_CONTENT_TYPE,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> SCIMResponse:
        """Execute an HTTP request with automatic 429 retry.

        Retries up to ``_MAX_RETRIES`` times when the server responds with
        429 Too Many Requests, sleeping for the duration specified by the
        ``Retry-After`` header (or ``_DEFAULT_RETRY_AFTER`` if absent).
        """
        url = f"{self.base_url}{path}"
        headers = self._build_headers()
        kwargs: Dict[str, Any] = {
            "headers": headers,
            "timeout": self.timeout,
        }
        if self.ca_bundle:
            kwargs["verify"] = self.ca_bundle
        else:
            kwargs["verify"] = not self.tls_no_verify
        if not self.token and self.username:
            kwargs["auth"] = (self.username, self.password or "")
        if self.proxy:
            kwargs["proxies"] = {"http": self.proxy, "https": self.proxy}
        if payload is not None:
            kwargs["json"] = payload

        logger.debug("%s %s headers=%s", method, url, redact_auth(headers))
        for attempt in range(_MAX_RETRIES + 1):
            raw = self.session.request(method, url, **kwargs)
            resp = SCIMResponse(raw.status_code, dict(raw.headers), raw.text)

            if resp.status_code == 429 and attempt < _MAX_RETRIES:
                retry_after = _parse_retry_after(resp.header("Retry-After"))
                logger.info("%s %s throttled (429), retrying in %.0fs", method, path, retry_after)
                time.sleep(retry_after)
                continue

            logger.debug("%s %s -> %d", method, url, resp.status_code)
            return resp

        return resp  # Return last response if all retries exhausted


def _error_from_response(method: str, path: str, resp: SCIMResponse) -> SCIMError:
    """Build a ``SCIMError`` from a non-2xx response, reading the SCIM Error body if present."""
    detail = resp.body or ""
    scim_type = None
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and URN_ERROR in (body.get("schemas") or []):
        detail = body.get("detail") or ""
        scim_type = body.get("scimType")
    return SCIMError(resp.status_code, detail, scim_type, method=method, path=path)


def _parse_retry_after(value: Optional[str]) -> float:
    """Parse a Retry-After header value into seconds to wait.

    Handles integer-second values per RFC 7231 Section 7.1.3.
    Returns ``_DEFAULT_RETRY_AFTER`` if the header is missing or unparseable.
    Always returns at least 1.0 second to avoid busy-loop retries.
    """
    if not value:
        return _DEFAULT_RETRY_AFTER
    try:
        return max(1.0, float(value))
    except ValueError:
        return _DEFAULT_RETRY_AFTER


def redact_auth(headers: Dict[str, str]) -> Dict[str, str]:
    """Return a copy of headers with Authorization values replaced by ``***REDACTED***``."""
    redacted = dict(headers)
    for key in list(redacted.keys()):
        if key.lower() == "authorization":
            redacted[key] = "***REDACTED***"
    return redacted
