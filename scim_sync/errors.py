"""Exception hierarchy shared by the mapper, transport, and synchronizer."""

from typing import Any, List, Optional


class ScimSyncError(Exception):
    """Base class for every error raised by scim-sync."""


class ConfigurationError(ScimSyncError):
    """The provider component configuration is unusable."""


class CorrelationError(ScimSyncError):
    """An external id could not be stored on a local record."""


class PayloadError(ScimSyncError):
    """A mapped SCIM document failed validation before being sent.

    Attributes:
        errors: The ``ValidationError`` findings that caused the rejection.
    """

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        self.errors = list(errors or [])
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{message}: {details}" if details else message)


class SCIMError(ScimSyncError):
    """The remote SCIM endpoint answered with a non-2xx status.

    Attributes:
        status:    HTTP status code of the response.
        detail:    ``detail`` from the SCIM Error body, or the raw body text.
        scim_type: ``scimType`` from the SCIM Error body, if any.
        method:    HTTP method of the failed request.
        path:      Request path relative to the endpoint base URL.
    """

    def __init__(
        self,
        status: int,
        detail: str = "",
        scim_type: Optional[str] = None,
        method: str = "",
        path: str = "",
    ):
        self.status = status
        self.detail = detail
        self.scim_type = scim_type
        self.method = method
        self.path = path
        where = f" {method} {path}".rstrip() if method else ""
        kind = f" ({scim_type})" if scim_type else ""
        super().__init__(f"SCIM request{where} failed with HTTP {status}{kind}: {detail}")

    @property
    def not_found(self) -> bool:
        return self.status == 404
