"""Intervals.icu integration package."""

from ironlog.intervals.client import IntervalsClient, classify_auth_failure
from ironlog.intervals.models import (
    AuthFailureReason,
    ConnectionDiagnosis,
    DiagnosisStatus,
    IntervalsAuthError,
    IntervalsError,
    IntervalsRequestError,
)
from ironlog.intervals.schemas import ActivityMap

__all__ = [
    "IntervalsClient",
    "classify_auth_failure",
    "AuthFailureReason",
    "ConnectionDiagnosis",
    "DiagnosisStatus",
    "IntervalsAuthError",
    "IntervalsError",
    "IntervalsRequestError",
    "ActivityMap",
]
