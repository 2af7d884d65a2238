"""
Exception classes raised by the Jamf API client.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class JamfError(Exception):
    """Base class for every error raised by this package."""


class MissingDataError(JamfError):
    """Raised when required data or parameters are missing."""


class InvalidDataError(JamfError):
    """Raised when a value fails validation."""


class InvalidConnectionError(JamfError):
    """Raised when a connection is unusable (not connected, bad token, old server)."""


class NoSuchItemError(JamfError):
    """Raised when a requested object does not exist."""


class AlreadyExistsError(JamfError):
    """Raised when creating an object whose unique identifier is taken."""


class AmbiguousError(JamfError):
    """Raised when an identifier matches more than one object."""


class UnsupportedError(JamfError):
    """Raised when an operation is not supported for a class or object."""


class AuthenticationError(JamfError):
    """Raised when credentials are rejected while acquiring a token."""


class AuthorizationError(JamfError):
    """Raised when the authenticated account lacks a privilege."""


class ConflictError(JamfError):
    """Raised when the Classic API reports a conflict (HTTP 409)."""


class BadRequestError(JamfError):
    """Raised when the Classic API rejects a request (HTTP 400)."""


class APIRequestError(JamfError):
    """Raised for other Classic API failures."""


class VersionLockError(JamfError):
    """Raised when an object changed on the server since it was fetched."""


class ApiErrorCause:
    """One entry of the ``errors`` array in a Jamf Pro API error body."""

    def __init__(
        self,
        code: Optional[str] = None,
        description: Optional[str] = None,
        field: Optional[str] = None,
        id: Optional[str] = None,
    ):
        self.code = code
        self.description = description
        self.field = field
        self.id = id

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ApiErrorCause":
        return cls(
            code=data.get("code"),
            description=data.get("description"),
            field=data.get("field"),
            id=data.get("id"),
        )

    def __repr__(self) -> str:
        return f"ApiErrorCause(code={self.code!r}, field={self.field!r}, description={self.description!r})"


class JamfProAPIError(JamfError):
    """
    Raised when the Jamf Pro API answers with a non-success status.

    The parsed error causes are available as ``errors``. When the server does
    not send any, common ones are synthesized for 403 and 404 responses.
    """

    RSRC_NOT_FOUND = "Resource Not Found"

    def __init__(self, http_response: Any, path: Optional[str] = None):
        self.http_response = http_response
        self.path = path
        self.http_status: int = getattr(http_response, "status_code", 0)
        self.api_status: Optional[int] = None
        self.errors: List[ApiErrorCause] = []
        self._parse_body()
        if not self.errors:
            self._add_common_basic_error_causes()
        super().__init__(str(self))

    def _parse_body(self) -> None:
        try:
            body = self.http_response.json()
        except ValueError:
            return
        if not isinstance(body, dict):
            return
        self.api_status = body.get("httpStatus")
        for cause in body.get("errors") or []:
            if isinstance(cause, dict):
                self.errors.append(ApiErrorCause.from_api(cause))

    def _add_common_basic_error_causes(self) -> None:
        if self.http_status == 403:
            self.errors.append(ApiErrorCause(code="INVALID_PRIVILEGE", description="Forbidden", field=""))
        elif self.http_status == 404:
            self.errors.append(
                ApiErrorCause(code="NOT_FOUND", description=f"'{self.path}' was not found on the server", field="")
            )

    def has_code(self, code: str) -> bool:
        return any(err.code == code for err in self.errors)

    def __str__(self) -> str:
        msg = f"HTTP {self.http_status}"
        if self.errors:
            msg += ":"
        parts = []
        for err in self.errors:
            err_str = ""
            if err.field:
                err_str += f" Field: {err.field}"
            if err.code or err.description:
                err_str += ", Error:"
            if err.code:
                err_str += f", {err.code}"
            if err.description:
                err_str += f", {err.description}"
            if err.id:
                err_str += f", Object ID: '{err.id}'"
            parts.append(err_str)
        return msg + "; ".join(parts)
