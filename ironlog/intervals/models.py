"""
Intervals.icu error types and connection diagnostics
"""

from enum import Enum

from pydantic import BaseModel, Field


class AuthFailureReason(str, Enum):
    """Why the API refused our credentials"""

    INVALID_CREDENTIALS = "invalid_credentials"
    ORIGIN_NOT_ALLOWED = "origin_not_allowed"


class IntervalsError(Exception):
    """Base class for Intervals.icu client errors"""


class IntervalsAuthError(IntervalsError):
    """401/403 from the API. ``reason`` tells which remediation applies."""

    def __init__(
        self,
        reason: AuthFailureReason,
        status: int,
        detail: str = "",
    ) -> None:
        if reason is AuthFailureReason.ORIGIN_NOT_ALLOWED:
            message = f"{status} Forbidden: request origin not allowed by the account"
        else:
            message = f"{status}: API key rejected"
        if detail:
            message = f"{message} (server says: {detail})"
        super().__init__(message)
        self.reason = reason
        self.status = status
        self.detail = detail


class IntervalsRequestError(IntervalsError):
    """Non-auth API failure or transport error"""

    def __init__(self, message: str, status: int | None = None, url: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.url = url


class DiagnosisStatus(str, Enum):
    """Outcome of a single-activity connection check"""

    OK = "ok"
    NO_GPS = "no_gps"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"
    NETWORK_ERROR = "network_error"


class ConnectionDiagnosis(BaseModel):
    """Result of probing one activity's GPS stream"""

    activity_id: str
    status: DiagnosisStatus
    http_status: int | None = None
    gps_points: int = 0
    hints: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in (DiagnosisStatus.OK, DiagnosisStatus.NO_GPS)
