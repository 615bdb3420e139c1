"""Tests for the command-line interface"""

import json

import pytest
from conftest import FakeIntervalsClient, make_activity, make_route
from typer.testing import CliRunner

from ironlog import main
from ironlog.intervals import (
    AuthFailureReason,
    ConnectionDiagnosis,
    DiagnosisStatus,
    IntervalsAuthError,
)
from ironlog.store import ACTIVITIES, WELLNESS

runner = CliRunner()


class FakeCliClient(FakeIntervalsClient):
    """Fake client that also plays the ``from_settings`` / context manager role."""

    diagnosis: ConnectionDiagnosis | None = None

    @classmethod
    def install(cls, monkeypatch: pytest.MonkeyPatch, **kwargs) -> "FakeCliClient":
        instance = cls(**kwargs)

        def from_settings(settings):
            settings.require_intervals_credentials()
            return instance

        monkeypatch.setattr(main.IntervalsClient, "from_settings", from_settings)
        return instance

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    async def diagnose_activity(self, activity_id: str) -> ConnectionDiagnosis:
        self.calls.append(("diagnose_activity", activity_id))
        assert self.diagnosis is not None
        return self.diagnosis


def _read_store(settings) -> dict:
    return json.loads(settings.store_path.read_text(encoding="utf-8"))


def test_sync_writes_store(monkeypatch, settings):
    FakeCliClient.install(
        monkeypatch,
        activities=[make_activity("A", "Ride"), make_activity("B", "Yoga")],
        wellness=[{"id": "2025-11-30", "restingHR": 48}],
    )

    result = runner.invoke(main.app, ["sync", "--no-routes"])

    assert result.exit_code == 0, result.output
    assert "Sync complete" in result.output
    data = _read_store(settings)
    [activity] = data[ACTIVITIES].values()
    assert activity["externalId"] == "A"
    assert data[WELLNESS]["wellness_2025-11-30"]["restingHR"] == 48


def test_sync_oldest_option(monkeypatch):
    client = FakeCliClient.install(monkeypatch)

    result = runner.invoke(main.app, ["sync", "--oldest", "2025-01-15", "--no-routes"])

    assert result.exit_code == 0, result.output
    [(_, (oldest, limit))] = [c for c in client.calls if c[0] == "fetch_activities"]
    assert oldest.isoformat() == "2025-01-15"
    assert limit == 50


def test_sync_fetches_routes(monkeypatch, settings):
    FakeCliClient.install(
        monkeypatch,
        activities=[make_activity("A", "Run")],
        maps={"A": make_route(12)},
    )

    result = runner.invoke(main.app, ["sync"])

    assert result.exit_code == 0, result.output
    cache = json.loads(settings.map_cache_path.read_text(encoding="utf-8"))
    assert len(cache["A"]) == 3
    assert _read_store(settings)["mission_data"]["paths"]["totalPaths"] == 1


def test_sync_missing_credentials(monkeypatch):
    monkeypatch.setenv("INTERVALS_API_KEY", "")

    result = runner.invoke(main.app, ["sync"])

    assert result.exit_code == 1
    assert "Configuration failed" in result.output
    assert "INTERVALS_API_KEY" in result.output


def test_sync_rejected_origin(monkeypatch, settings):
    FakeCliClient.install(
        monkeypatch,
        activities=[make_activity("A")],
        access_error=IntervalsAuthError(
            AuthFailureReason.ORIGIN_NOT_ALLOWED, 403, "IP not allowed"
        ),
    )

    result = runner.invoke(main.app, ["sync"])

    assert result.exit_code == 1
    assert "Intervals.icu authentication failed" in result.output
    assert not settings.store_path.exists()


def test_map_sync_publishes(monkeypatch, settings):
    settings.store_path.write_text(
        json.dumps(
            {ACTIVITIES: {"d1": {"externalId": "A", "activityType": "bike"}}}
        ),
        encoding="utf-8",
    )
    client = FakeCliClient.install(monkeypatch, maps={"A": make_route(6)})

    result = runner.invoke(main.app, ["map-sync"])

    assert result.exit_code == 0, result.output
    assert client.map_requests == ["A"]
    assert _read_store(settings)["mission_data"]["paths"]["totalPoints"] == 2


def test_check_connection_with_activity(monkeypatch):
    client = FakeCliClient.install(monkeypatch)
    client.diagnosis = ConnectionDiagnosis(
        activity_id="i77", status=DiagnosisStatus.OK, http_status=200, gps_points=321
    )

    result = runner.invoke(main.app, ["check-connection", "i77"])

    assert result.exit_code == 0, result.output
    assert "Credentials accepted" in result.output
    assert "GPS points: 321" in result.output
    assert "tes......789" in result.output


def test_check_connection_reports_missing_activity(monkeypatch):
    client = FakeCliClient.install(monkeypatch)
    client.diagnosis = ConnectionDiagnosis(
        activity_id="i77",
        status=DiagnosisStatus.NOT_FOUND,
        http_status=404,
        hints=["Activity i77 does not exist."],
    )

    result = runner.invoke(main.app, ["check-connection", "i77"])

    assert result.exit_code == 1
    assert "NOT FOUND" in result.output


def test_wipe_wellness_requires_configured_secret():
    result = runner.invoke(main.app, ["wipe-wellness", "--admin-secret", "guess"])

    assert result.exit_code == 1
    assert "Admin check failed" in result.output


def test_wipe_wellness(monkeypatch):
    monkeypatch.setenv("ADMIN_SECRET", "open-sesame")
    from ironlog.config import get_settings

    store_path = get_settings().store_path
    store_path.write_text(
        json.dumps(
            {
                ACTIVITIES: {"d1": {"externalId": "A"}},
                WELLNESS: {"wellness_2025-11-30": {}, "wellness_2025-12-01": {}},
            }
        ),
        encoding="utf-8",
    )

    result = runner.invoke(main.app, ["wipe-wellness", "--admin-secret", "open-sesame"])

    assert result.exit_code == 0, result.output
    assert "Deleted 2 wellness" in result.output
    data = json.loads(store_path.read_text(encoding="utf-8"))
    assert data[WELLNESS] == {}
    assert data[ACTIVITIES] == {"d1": {"externalId": "A"}}


def test_config_masks_secrets():
    result = runner.invoke(main.app, ["config"])

    assert result.exit_code == 0, result.output
    assert "tes......789" in result.output
    assert "test_api_key_0123456789" not in result.output
