"""
Map Intervals.icu activity and wellness payloads onto canonical records.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any

import structlog

from ironlog.sync.models import ActivityRecord, ActivityType, WellnessRecord

logger = structlog.get_logger(__name__)

# Allow-list and mapping in one table: unknown source types are excluded.
SOURCE_TYPE_MAP: Mapping[str, ActivityType] = MappingProxyType(
    {
        "Ride": ActivityType.BIKE,
        "Run": ActivityType.RUN,
        "Swim": ActivityType.SWIM,
        "OpenWaterSwim": ActivityType.SWIM,
        "WeightTraining": ActivityType.WORKOUT,
    }
)

# canonical field -> source field
METRIC_FIELDS: Mapping[str, str] = MappingProxyType(
    {
        "avg_heart_rate": "average_heartrate",
        "max_heart_rate": "max_heartrate",
        "avg_speed": "average_speed",
        "elevation_gain": "total_elevation_gain",
        "avg_cadence": "average_cadence",
        "training_load": "icu_training_load",
        "intensity": "icu_intensity",
        "max_power": "icu_pm_p_max",
    }
)

WELLNESS_FIELDS: Mapping[str, str] = MappingProxyType(
    {
        "resting_hr": "restingHR",
        "steps": "steps",
        "sleep_secs": "sleepSecs",
        "spo2": "spO2",
        "hrv": "hrv",
        "weight": "weight",
    }
)

_CENTS = Decimal("0.01")
_WHOLE = Decimal("1")


def map_source_type(source_type: Any) -> ActivityType | None:
    """Canonical type for ``source_type``; ``None`` means excluded."""
    if not isinstance(source_type, str):
        return None
    return SOURCE_TYPE_MAP.get(source_type)


def _decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def metres_to_km(metres: Any) -> str:
    """``20000`` -> ``"20.00"``. Missing or non-numeric distance counts as 0."""
    value = _decimal(metres) or Decimal(0)
    return str((value / 1000).quantize(_CENTS, rounding=ROUND_HALF_UP))


def seconds_to_minutes(seconds: Any) -> int:
    """Round to the nearest minute, halves rounding up."""
    value = _decimal(seconds) or Decimal(0)
    return int((value / 60).quantize(_WHOLE, rounding=ROUND_HALF_UP))


def local_date(timestamp: Any) -> date | None:
    """Date part of a local ISO timestamp; no timezone conversion."""
    if not isinstance(timestamp, str) or not timestamp:
        return None
    try:
        return date.fromisoformat(timestamp.split("T", 1)[0].strip())
    except ValueError:
        return None


def _metric(payload: Mapping[str, Any], key: str) -> int | float | None:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def normalize_activity(payload: Mapping[str, Any]) -> ActivityRecord | None:
    """Canonical record for one source activity, or ``None`` if excluded."""
    activity_type = map_source_type(payload.get("type"))
    if activity_type is None:
        return None

    raw_id = payload.get("id")
    activity_date = local_date(payload.get("start_date_local"))
    if raw_id in (None, "") or activity_date is None:
        logger.warning(
            "Dropping activity without id or start date",
            activity_id=raw_id,
            start_date_local=payload.get("start_date_local"),
        )
        return None

    name = payload.get("name")
    return ActivityRecord(
        external_id=str(raw_id),
        activity_type=activity_type,
        distance=metres_to_km(payload.get("distance")),
        duration=seconds_to_minutes(payload.get("moving_time")),
        date=activity_date,
        description=str(name) if name is not None else None,
        **{field: _metric(payload, key) for field, key in METRIC_FIELDS.items()},
    )


def normalize_activities(payloads: Iterable[Mapping[str, Any]]) -> list[ActivityRecord]:
    records: list[ActivityRecord] = []
    for payload in payloads:
        record = normalize_activity(payload)
        if record is not None:
            records.append(record)
    return records


def normalize_wellness(payloads: Iterable[Mapping[str, Any]]) -> list[WellnessRecord]:
    """One record per payload that carries its date ``id``."""
    records: list[WellnessRecord] = []
    for payload in payloads:
        day = payload.get("id")
        if not isinstance(day, str) or local_date(day) is None:
            continue
        values: dict[str, Any] = {
            field: _metric(payload, key) for field, key in WELLNESS_FIELDS.items()
        }
        for field in ("steps", "sleep_secs"):
            if values[field] is not None:
                values[field] = int(values[field])
        records.append(WellnessRecord(date=day, **values))
    return records
