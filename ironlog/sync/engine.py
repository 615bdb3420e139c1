"""
Sync engine: pull from Intervals.icu, reconcile by external id, commit once,
then hand new GPS activities to the route fetcher.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from datetime import UTC, date, datetime, timedelta

from ironlog.config import Settings
from ironlog.intervals import IntervalsClient
from ironlog.store import ACTIVITIES, WELLNESS, DocumentStore, StoredDocument
from ironlog.sync.assembler import GeoJSONAssembler
from ironlog.sync.map_cache import MapCache
from ironlog.sync.models import (
    MAPPABLE_TYPES,
    ActivityRecord,
    ActivityType,
    RouteBatchResult,
    RouteRequest,
    SyncReport,
)
from ironlog.sync.normalizer import normalize_activities, normalize_wellness
from ironlog.sync.rate_limiter import FixedIntervalRateLimiter
from ironlog.sync.route_batcher import RouteFetchBatcher
from ironlog.utils.logger import LoggerMixin, log_api_usage


class SyncInProgressError(Exception):
    """A sync was started while another one on the same engine is running."""


def external_id_index(documents: Iterable[StoredDocument]) -> dict[str, str]:
    """Map ``externalId -> document id``; manual entries have no external id."""
    index: dict[str, str] = {}
    for doc in documents:
        external_id = doc.data.get("externalId")
        if external_id in (None, ""):
            continue
        index.setdefault(str(external_id), doc.id)
    return index


def route_requests(records: Iterable[ActivityRecord]) -> list[RouteRequest]:
    """Mappable activities in order, each external id once."""
    requests: dict[str, RouteRequest] = {}
    for record in records:
        if record.activity_type in MAPPABLE_TYPES:
            requests.setdefault(
                record.external_id,
                RouteRequest(
                    external_id=record.external_id,
                    activity_type=record.activity_type,
                ),
            )
    return list(requests.values())


class SyncEngine(LoggerMixin):
    """Runs one sync pass at a time against an injected client and store."""

    def __init__(
        self,
        client: IntervalsClient,
        store: DocumentStore,
        cache: MapCache,
        settings: Settings,
        *,
        batcher: RouteFetchBatcher | None = None,
        rate_limiter: FixedIntervalRateLimiter | None = None,
        now: Callable[[], datetime] | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.client = client
        self.store = store
        self.cache = cache
        self.settings = settings
        self._now = now or (lambda: datetime.now(UTC))
        self._today = today or date.today
        if batcher is None:
            batcher = RouteFetchBatcher(
                client,
                cache,
                GeoJSONAssembler(store, cache, now=self._now),
                rate_limiter or FixedIntervalRateLimiter(settings.route_fetch_delay),
            )
        self.batcher = batcher
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def run(
        self,
        *,
        activities_oldest: date | None = None,
        fetch_routes: bool = True,
    ) -> SyncReport:
        """Synchronise activities and wellness, then fetch missing routes.

        Nothing is written unless every fetch succeeded; all record writes
        land in one batch commit. Route failures are reported, not raised.
        """
        if self._lock.locked():
            raise SyncInProgressError("A sync is already running")
        async with self._lock:
            return await self._run(activities_oldest, fetch_routes)

    async def sync_routes(self, *, force_publish: bool = False) -> RouteBatchResult:
        """Fetch routes for every stored GPS activity missing from the cache."""
        if self._lock.locked():
            raise SyncInProgressError("A sync is already running")
        async with self._lock:
            stored = await self.store.list_activities()
            requests = [
                RouteRequest(external_id=external_id, activity_type=activity_type)
                for external_id, activity_type in _stored_mappable(stored)
            ]
            self.logger.info(
                "Scanning stored activities for routes",
                stored=len(stored),
                mappable=len(requests),
            )
            return await self.batcher.run(requests, force_publish=force_publish)

    async def _run(
        self, activities_oldest: date | None, fetch_routes: bool
    ) -> SyncReport:
        stored = await self.store.list_activities()
        index = external_id_index(stored)

        await self.client.verify_access()
        wellness_since = self._today() - timedelta(
            days=self.settings.wellness_lookback_days
        )
        wellness_payloads = await self.client.fetch_wellness(wellness_since)
        activity_payloads = await self.client.fetch_activities(
            activities_oldest or self.settings.activities_oldest,
            self.settings.activities_limit,
        )
        log_api_usage(
            "Intervals.icu",
            {"activities": len(activity_payloads), "wellness": len(wellness_payloads)},
        )

        records = normalize_activities(activity_payloads)
        wellness = normalize_wellness(wellness_payloads)
        report = SyncReport(skipped=len(activity_payloads) - len(records))

        stamp = self._now().isoformat()
        batch = self.store.batch()
        for record in records:
            data = record.to_document()
            doc_id = index.get(record.external_id)
            if doc_id is None:
                doc_id = batch.new_id()
                index[record.external_id] = doc_id
                data.update(createdAt=stamp, updatedAt=stamp)
                batch.set(ACTIVITIES, doc_id, data)
                report.added += 1
            else:
                data["updatedAt"] = stamp
                batch.set(ACTIVITIES, doc_id, data, merge=True)
                report.updated += 1

        for day in wellness:
            data = day.to_document()
            data["updatedAt"] = stamp
            batch.set(WELLNESS, day.document_id, data, merge=True)
        report.wellness = len(wellness)

        if len(batch):
            await self.store.commit(batch)
        self.logger.info(
            "Records committed",
            added=report.added,
            updated=report.updated,
            skipped=report.skipped,
            wellness=report.wellness,
        )

        requests = route_requests(records)
        if fetch_routes and requests:
            report.routes = await self.batcher.run(requests)

        self.logger.info("Sync complete", summary=report.summary())
        return report


def _stored_mappable(
    documents: Iterable[StoredDocument],
) -> list[tuple[str, ActivityType]]:
    found: dict[str, ActivityType] = {}
    for doc in documents:
        external_id = doc.data.get("externalId")
        if external_id in (None, ""):
            continue
        try:
            activity_type = ActivityType(doc.data.get("activityType"))
        except ValueError:
            continue
        if activity_type in MAPPABLE_TYPES:
            found.setdefault(str(external_id), activity_type)
    return list(found.items())
