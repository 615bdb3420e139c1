"""
Shared fixtures for the unit tests.

- Test environment variables are set automatically for every test (autouse)
- The project root is added to `sys.path` so `import ironlog.*` resolves
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import pytest

# Project root (parent of this file's parent)
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

FIXED_NOW = datetime(2025, 12, 1, 8, 30, tzinfo=UTC)
FIXED_TODAY = date(2025, 12, 1)


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Set dummy credentials and isolated paths for every test.

    `monkeypatch` restores the environment when the test ends, and the
    cached settings are dropped on both sides of the test.
    """
    from ironlog.config import clear_settings_cache

    env: dict[str, str] = {
        "INTERVALS_ATHLETE_ID": "i12345",
        "INTERVALS_API_KEY": "test_api_key_0123456789",
        "STORE_PATH": str(tmp_path / "store.json"),
        "MAP_CACHE_PATH": str(tmp_path / "map-cache.json"),
        "LOG_DIR": str(tmp_path / "logs"),
        "ENVIRONMENT": "testing",
    }
    for k, v in env.items():
        monkeypatch.setenv(k, v)
    for k in ("VITE_INTERVALS_ATHLETE_ID", "VITE_INTERVALS_API_KEY", "ADMIN_SECRET"):
        monkeypatch.delenv(k, raising=False)

    clear_settings_cache()
    yield
    clear_settings_cache()


class FakeIntervalsClient:
    """In-memory stand-in for ``IntervalsClient``.

    ``maps`` values may be a list of points, ``None`` (no data) or an
    exception instance, which is raised when that route is requested.
    """

    def __init__(
        self,
        activities: list[dict[str, Any]] | None = None,
        wellness: list[dict[str, Any]] | None = None,
        maps: dict[str, Any] | None = None,
        access_error: Exception | None = None,
    ) -> None:
        self.activities = activities or []
        self.wellness = wellness or []
        self.maps = maps or {}
        self.access_error = access_error
        self.calls: list[tuple[str, Any]] = []

    async def verify_access(self) -> None:
        self.calls.append(("verify_access", None))
        if self.access_error is not None:
            raise self.access_error

    async def fetch_wellness(self, oldest: date) -> list[dict[str, Any]]:
        self.calls.append(("fetch_wellness", oldest))
        return list(self.wellness)

    async def fetch_activities(self, oldest: date, limit: int) -> list[dict[str, Any]]:
        self.calls.append(("fetch_activities", (oldest, limit)))
        return list(self.activities)

    async def fetch_activity_map(self, activity_id: str):
        from ironlog.intervals import ActivityMap

        self.calls.append(("fetch_activity_map", activity_id))
        value = self.maps.get(activity_id)
        if isinstance(value, Exception):
            raise value
        if value is None:
            return None
        return ActivityMap(activity_id=activity_id, latlngs=value)

    @property
    def map_requests(self) -> list[str]:
        return [arg for name, arg in self.calls if name == "fetch_activity_map"]


class FakeSleep:
    """Records requested sleeps instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def make_activity(
    activity_id: str | int,
    source_type: str = "Ride",
    *,
    start: str = "2025-11-22T07:15:00",
    distance: float | None = 20000,
    moving_time: float | None = 3600,
    **extra: Any,
) -> dict[str, Any]:
    """Intervals.icu-shaped activity payload."""
    payload: dict[str, Any] = {
        "id": activity_id,
        "type": source_type,
        "start_date_local": start,
        "distance": distance,
        "moving_time": moving_time,
        "name": f"{source_type} {activity_id}",
    }
    payload.update(extra)
    return payload


def make_route(points: int, offset: float = 0.0) -> list[list[float]]:
    """``points`` well-formed ``[lat, lng]`` pairs."""
    return [[45.0 + offset + i / 1000, 7.0 + offset + i / 1000] for i in range(points)]


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def settings():
    from ironlog.config import get_settings

    return get_settings()
