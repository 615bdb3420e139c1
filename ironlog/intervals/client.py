"""Async client for the Intervals.icu REST API."""

from __future__ import annotations

import asyncio
import re
from datetime import date
from types import TracebackType
from typing import TYPE_CHECKING, Any

import aiohttp

from ironlog.intervals.models import (
    AuthFailureReason,
    ConnectionDiagnosis,
    DiagnosisStatus,
    IntervalsAuthError,
    IntervalsRequestError,
)
from ironlog.intervals.schemas import ActivityMap
from ironlog.utils.logger import LoggerMixin

if TYPE_CHECKING:
    from ironlog.config import Settings

DEFAULT_BASE_URL = "https://intervals.icu/api/v1"

# Intervals.icu API keys authenticate as this fixed Basic-auth username.
API_KEY_USERNAME = "API_KEY"

_ORIGIN_HINT = re.compile(
    r"\b(ip|origin|address|allow[- ]?list(ed)?|whitelist(ed)?)\b", re.IGNORECASE
)

_TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


def classify_auth_failure(status: int, body: str) -> AuthFailureReason:
    """Tell a rejected key apart from a rejected network origin.

    Intervals.icu answers both with 403; only the body differs.
    """
    if status == 403 and _ORIGIN_HINT.search(body or ""):
        return AuthFailureReason.ORIGIN_NOT_ALLOWED
    return AuthFailureReason.INVALID_CREDENTIALS


class IntervalsClient(LoggerMixin):
    """Thin wrapper around the athlete, wellness and map endpoints."""

    def __init__(
        self,
        athlete_id: str,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = "IronLog-Sync/1.0",
        timeout: int = 30,
    ) -> None:
        self.athlete_id = athlete_id
        self.base_url = base_url.rstrip("/")
        self._auth = aiohttp.BasicAuth(API_KEY_USERNAME, api_key)
        self._user_agent = user_agent
        self._timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> IntervalsClient:
        """Build a client, raising ``ConfigurationError`` on missing credentials."""
        athlete_id, api_key = settings.require_intervals_credentials()
        return cls(
            athlete_id,
            api_key,
            base_url=settings.intervals_base_url,
            user_agent=settings.intervals_user_agent,
            timeout=settings.intervals_timeout,
        )

    async def get_session(self) -> aiohttp.ClientSession:
        """Return a shared aiohttp session, creating it when needed."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers={
                    "Authorization": self._auth.encode(),
                    "User-Agent": self._user_agent,
                },
            )
        return self._session

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> IntervalsClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _athlete_url(self, endpoint: str) -> str:
        return f"{self.base_url}/athlete/{self.athlete_id}/{endpoint.lstrip('/')}"

    async def fetch_activities(self, oldest: date, limit: int) -> list[dict[str, Any]]:
        """Activities started on or after ``oldest``."""
        payload = await self._get_json(
            self._athlete_url("activities"),
            params={"oldest": oldest.isoformat(), "limit": str(limit)},
        )
        return self._as_list(payload, "activities")

    async def fetch_wellness(self, oldest: date) -> list[dict[str, Any]]:
        """Daily wellness records from ``oldest`` onwards."""
        payload = await self._get_json(
            self._athlete_url("wellness"),
            params={"oldest": oldest.isoformat()},
        )
        return self._as_list(payload, "wellness")

    async def verify_access(self) -> None:
        """Cheap authenticated request; raises on rejected credentials."""
        await self._get_json(
            self._athlete_url("wellness"),
            params={"oldest": date.today().isoformat()},
        )
        self.logger.info("Intervals.icu connection verified", athlete=self.athlete_id)

    async def fetch_activity_map(self, activity_id: str) -> ActivityMap | None:
        """Route of one activity, or ``None`` when the API has no GPS data for it.

        Any non-2xx response counts as "no data". Transport failures raise
        ``IntervalsRequestError`` so the caller can retry on a later pass.
        """
        url = f"{self.base_url}/activity/{activity_id}/map"
        session = await self.get_session()
        try:
            async with session.get(url) as resp:
                if not resp.ok:
                    self.logger.info(
                        "No map data for activity",
                        activity_id=activity_id,
                        status=resp.status,
                    )
                    return None
                payload = await resp.json(content_type=None)
        except _TRANSPORT_ERRORS as exc:
            raise IntervalsRequestError(
                f"Map request for activity {activity_id} failed: {exc!r}", url=url
            ) from exc
        except ValueError as exc:
            raise IntervalsRequestError(
                f"Map response for activity {activity_id} is not JSON", url=url
            ) from exc

        if not isinstance(payload, dict):
            return None
        latlngs = payload.get("latlngs")
        if not isinstance(latlngs, list) or not latlngs:
            return None
        bounds = payload.get("bounds")
        return ActivityMap(
            activity_id=str(activity_id),
            latlngs=latlngs,
            bounds=bounds if isinstance(bounds, list) else None,
        )

    async def diagnose_activity(self, activity_id: str) -> ConnectionDiagnosis:
        """Probe an activity's GPS stream and explain what the status means."""
        url = f"{self.base_url}/activity/{activity_id}/streams"
        session = await self.get_session()
        payload: Any = None
        body = ""
        try:
            async with session.get(url, params={"keys": "latlng"}) as resp:
                status = resp.status
                if resp.ok:
                    payload = await resp.json(content_type=None)
                else:
                    body = await resp.text()
        except (*_TRANSPORT_ERRORS, ValueError) as exc:
            return ConnectionDiagnosis(
                activity_id=activity_id,
                status=DiagnosisStatus.NETWORK_ERROR,
                hints=[str(exc) or type(exc).__name__],
            )

        if status == 401:
            return ConnectionDiagnosis(
                activity_id=activity_id,
                status=DiagnosisStatus.UNAUTHORIZED,
                http_status=status,
                hints=[
                    "The API key is invalid or expired.",
                    "Regenerate it under Intervals.icu > Settings > Developer.",
                ],
            )
        if status == 403:
            hints = ["The activity is private or the account blocks API access."]
            reason = classify_auth_failure(status, body)
            if reason is AuthFailureReason.ORIGIN_NOT_ALLOWED:
                hints = ["The account does not accept requests from this network."]
            return ConnectionDiagnosis(
                activity_id=activity_id,
                status=DiagnosisStatus.FORBIDDEN,
                http_status=status,
                hints=[*hints, body.strip()] if body.strip() else hints,
            )
        if status == 404:
            return ConnectionDiagnosis(
                activity_id=activity_id,
                status=DiagnosisStatus.NOT_FOUND,
                http_status=status,
                hints=[f"Activity {activity_id} does not exist."],
            )
        if 200 <= status < 300:
            points = self._count_latlng_points(payload)
            if points:
                return ConnectionDiagnosis(
                    activity_id=activity_id,
                    status=DiagnosisStatus.OK,
                    http_status=status,
                    gps_points=points,
                )
            return ConnectionDiagnosis(
                activity_id=activity_id,
                status=DiagnosisStatus.NO_GPS,
                http_status=status,
                hints=["No GPS stream on this activity. Indoor session?"],
            )
        return ConnectionDiagnosis(
            activity_id=activity_id,
            status=DiagnosisStatus.UNKNOWN,
            http_status=status,
            hints=[body.strip()] if body.strip() else [],
        )

    @staticmethod
    def _count_latlng_points(payload: Any) -> int:
        if not isinstance(payload, list):
            return 0
        for stream in payload:
            if isinstance(stream, dict) and stream.get("type") == "latlng":
                data = stream.get("data")
                return len(data) if isinstance(data, list) else 0
        return 0

    def _as_list(self, payload: Any, what: str) -> list[dict[str, Any]]:
        if not isinstance(payload, list):
            self.logger.warning(
                "Unexpected payload shape", endpoint=what, type=type(payload).__name__
            )
            return []
        return [item for item in payload if isinstance(item, dict)]

    async def _get_json(self, url: str, *, params: dict[str, str]) -> Any:
        session = await self.get_session()
        self.logger.debug("Requesting", url=url, params=params)
        try:
            async with session.get(url, params=params) as resp:
                if resp.status in (401, 403):
                    detail = (await resp.text()).strip()
                    reason = classify_auth_failure(resp.status, detail)
                    self.logger.error(
                        "Intervals.icu rejected request",
                        url=url,
                        status=resp.status,
                        reason=reason.value,
                        detail=detail,
                    )
                    raise IntervalsAuthError(reason, resp.status, detail)
                if not resp.ok:
                    raise IntervalsRequestError(
                        f"API error: {resp.status} {resp.reason}",
                        status=resp.status,
                        url=url,
                    )
                return await resp.json(content_type=None)
        except _TRANSPORT_ERRORS as exc:
            raise IntervalsRequestError(f"Request failed: {exc!r}", url=url) from exc
        except ValueError as exc:
            raise IntervalsRequestError("Response is not valid JSON", url=url) from exc
