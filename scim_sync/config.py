"""Provider component configuration.

A provider component is one configured SCIM endpoint inside the host identity
system.  Its settings arrive as a flat string mapping (the host's component
config) or from ``SCIM_SYNC_*`` environment variables when running the CLI.
"""

import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

from .errors import ConfigurationError
from .http_client import SCIMClient

DEFAULT_COMPONENT_ID = "default"
DEFAULT_TIMEOUT = 30

ENV_PREFIX = "SCIM_SYNC_"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _as_bool(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"Expected a boolean, got {value!r}")


def _as_timeout(value: Any) -> int:
    if value is None or value == "":
        return DEFAULT_TIMEOUT
    try:
        timeout = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"timeout must be an integer number of seconds, got {value!r}")
    if timeout <= 0:
        raise ConfigurationError(f"timeout must be positive, got {timeout}")
    return timeout


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text else None


@dataclass
class ProviderConfig:
    """Settings for one SCIM provider component.

    ``tls_no_verify`` defaults to True: provisioning endpoints are commonly
    internal services with self-signed certificates.
    """

    component_id: str
    endpoint: str
    username: Optional[str] = None
    password: Optional[str] = None
    bearer_token: Optional[str] = None
    timeout: int = DEFAULT_TIMEOUT
    tls_no_verify: bool = True
    ca_bundle: Optional[str] = None
    proxy: Optional[str] = None

    def __post_init__(self):
        self.endpoint = (self.endpoint or "").rstrip(" /")

    @classmethod
    def from_component(cls, component_id: str, settings: Mapping[str, Any]) -> "ProviderConfig":
        """Read the host component keys (``endPoint``, ``bearerToken``, ...)."""
        return cls(
            component_id=component_id,
            endpoint=settings.get("endPoint") or "",
            username=_blank_to_none(settings.get("username")),
            password=_blank_to_none(settings.get("password")),
            bearer_token=_blank_to_none(settings.get("bearerToken")),
            timeout=_as_timeout(settings.get("timeout")),
            tls_no_verify=_as_bool(settings.get("allowSelfSigned"), True),
            ca_bundle=_blank_to_none(settings.get("caBundle")),
            proxy=_blank_to_none(settings.get("proxy")),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProviderConfig":
        environ = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            return _blank_to_none(environ.get(ENV_PREFIX + name))

        return cls(
            component_id=get("COMPONENT_ID") or DEFAULT_COMPONENT_ID,
            endpoint=get("ENDPOINT") or "",
            username=get("USERNAME"),
            password=get("PASSWORD"),
            bearer_token=get("TOKEN"),
            timeout=_as_timeout(get("TIMEOUT")),
            tls_no_verify=_as_bool(get("TLS_NO_VERIFY"), True),
            ca_bundle=get("CA_BUNDLE"),
            proxy=get("PROXY"),
        )

    def check(self) -> None:
        """Raise ``ConfigurationError`` if the component cannot reach an endpoint."""
        if not self.component_id:
            raise ConfigurationError("component id is required")
        if not self.endpoint:
            raise ConfigurationError("SCIM endpoint is required")
        parsed = urlparse(self.endpoint)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(f"SCIM endpoint must be an http(s) URL: {self.endpoint!r}")
        if not self.bearer_token and not (self.username and self.password):
            raise ConfigurationError(
                "Either a bearer token or a username and password are required"
            )

    def build_client(self) -> SCIMClient:
        """Check the settings and return a ``SCIMClient`` for this endpoint."""
        self.check()
        return SCIMClient(
            self.endpoint,
            token=self.bearer_token,
            username=self.username,
            password=self.password,
            tls_no_verify=self.tls_no_verify,
            timeout=self.timeout,
            proxy=self.proxy,
            ca_bundle=self.ca_bundle,
        )
