"""Canonical records and sync results."""

from __future__ import annotations

from datetime import date as date_type
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SOURCE_NAME = "intervals.icu"

# Measured values keep the numeric type the source sent.
Metric = int | float | None


class ActivityType(str, Enum):
    """Canonical discipline of a training session"""

    SWIM = "swim"
    BIKE = "bike"
    RUN = "run"
    WORKOUT = "workout"


# Disciplines that have a GPS route worth drawing on the map.
MAPPABLE_TYPES = frozenset({ActivityType.BIKE, ActivityType.RUN, ActivityType.SWIM})


class ActivityRecord(BaseModel):
    """One completed training session as stored in the training log.

    Stored with camelCase keys. Optional metrics are ``None`` when the source
    did not report them; ``0`` means a measured zero.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    external_id: str
    activity_type: ActivityType
    distance: str = Field(description="Kilometres, two decimals")
    duration: int = Field(description="Moving time in minutes")
    date: date_type
    description: str | None = None
    source: str = SOURCE_NAME

    avg_heart_rate: Metric = None
    max_heart_rate: Metric = None
    avg_speed: Metric = None
    elevation_gain: Metric = None
    avg_cadence: Metric = None
    training_load: Metric = None
    intensity: Metric = None
    max_power: Metric = None

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class WellnessRecord(BaseModel):
    """Biometric summary for one calendar day."""

    model_config = ConfigDict(populate_by_name=True)

    date: str
    resting_hr: Metric = Field(default=None, alias="restingHR")
    steps: int | None = None
    sleep_secs: int | None = Field(default=None, alias="sleepSecs")
    spo2: Metric = Field(default=None, alias="spO2")
    hrv: Metric = None
    weight: Metric = None

    @property
    def document_id(self) -> str:
        return f"wellness_{self.date}"

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class RouteRequest(BaseModel):
    """An activity whose route should be downloaded."""

    external_id: str
    activity_type: ActivityType


class RouteOutcome(str, Enum):
    """Result of fetching one route"""

    FETCHED = "fetched"  # coordinates cached
    NO_DATA = "no_data"  # source has no usable GPS track
    ERROR = "error"  # request failed, retried on the next pass
    CACHED = "cached"  # already in the cache, not requested


class RouteBatchResult(BaseModel):
    outcomes: dict[str, RouteOutcome] = Field(default_factory=dict)
    published: bool = False

    def _count(self, outcome: RouteOutcome) -> int:
        return sum(1 for value in self.outcomes.values() if value is outcome)

    @property
    def fetched(self) -> int:
        return self._count(RouteOutcome.FETCHED)

    @property
    def no_data(self) -> int:
        return self._count(RouteOutcome.NO_DATA)

    @property
    def failed(self) -> int:
        return self._count(RouteOutcome.ERROR)

    @property
    def cached(self) -> int:
        return self._count(RouteOutcome.CACHED)


class SyncReport(BaseModel):
    """Counts reported back to whoever triggered the sync."""

    added: int = 0
    updated: int = 0
    skipped: int = 0
    wellness: int = 0
    routes: RouteBatchResult | None = None

    @property
    def routes_fetched(self) -> int:
        return self.routes.fetched if self.routes else 0

    def summary(self) -> str:
        text = (
            f"Added: {self.added}, Updated: {self.updated}, Skipped: {self.skipped}, "
            f"Wellness days: {self.wellness}"
        )
        if self.routes is not None:
            text += (
                f", Routes fetched: {self.routes.fetched}"
                f" (no data: {self.routes.no_data}, failed: {self.routes.failed})"
            )
        return text


class MapDocument(BaseModel):
    """The published map: every cached route as one FeatureCollection."""

    model_config = ConfigDict(populate_by_name=True)

    geo_json: dict[str, Any] = Field(alias="geoJSON")
    total_paths: int = Field(alias="totalPaths")
    total_points: int = Field(alias="totalPoints")
    updated_at: str = Field(alias="updatedAt")

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
