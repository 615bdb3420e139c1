"""
Download missing routes one at a time and cache the processed coordinates.
"""

from __future__ import annotations

from collections.abc import Iterable

from ironlog.intervals import IntervalsClient
from ironlog.sync.assembler import GeoJSONAssembler
from ironlog.sync.coordinates import DOWNSAMPLE_STRIDE, process_coordinates
from ironlog.sync.map_cache import MapCache
from ironlog.sync.models import RouteBatchResult, RouteOutcome, RouteRequest
from ironlog.sync.rate_limiter import FixedIntervalRateLimiter
from ironlog.utils.logger import LoggerMixin


class RouteFetchBatcher(LoggerMixin):
    """Sequential route fetcher with per-item failure isolation.

    Requests go out strictly in list order through the rate limiter. A failed
    or empty fetch is recorded and the loop moves on; only successes are
    written to the cache, so failures are retried on the next pass.
    """

    def __init__(
        self,
        client: IntervalsClient,
        cache: MapCache,
        assembler: GeoJSONAssembler,
        rate_limiter: FixedIntervalRateLimiter,
        *,
        stride: int = DOWNSAMPLE_STRIDE,
    ) -> None:
        self.client = client
        self.cache = cache
        self.assembler = assembler
        self.rate_limiter = rate_limiter
        self.stride = stride

    async def run(
        self, requests: Iterable[RouteRequest], *, force_publish: bool = False
    ) -> RouteBatchResult:
        """Fetch every request not already cached, then republish the map.

        The map is rebuilt only when at least one route was added, unless
        ``force_publish`` is set.
        """
        await self.cache.load()
        result = RouteBatchResult()

        pending: dict[str, RouteRequest] = {}
        for request in requests:
            if request.external_id in self.cache:
                result.outcomes[request.external_id] = RouteOutcome.CACHED
            else:
                pending.setdefault(request.external_id, request)

        if pending:
            self.logger.info("Fetching missing routes", count=len(pending))

        for request in pending.values():
            result.outcomes[request.external_id] = await self._fetch_one(request)

        if result.fetched:
            await self.cache.flush()
            self.logger.info("Map cache updated", new_routes=result.fetched)

        if result.fetched or force_publish:
            await self.assembler.publish()
            result.published = True
        else:
            self.logger.info("No new routes cached, map left unchanged")

        return result

    async def _fetch_one(self, request: RouteRequest) -> RouteOutcome:
        external_id = request.external_id
        log = self.logger.bind(
            activity_id=external_id, activity_type=request.activity_type.value
        )
        try:
            async with self.rate_limiter:
                route = await self.client.fetch_activity_map(external_id)
        except Exception as exc:
            log.warning("Route fetch failed, will retry next sync", error=str(exc))
            return RouteOutcome.ERROR

        if route is None:
            log.info("No map found (indoor session?)")
            return RouteOutcome.NO_DATA

        coordinates = process_coordinates(route.latlngs, self.stride)
        if not coordinates:
            log.warning("Route has no valid points", raw_points=len(route.latlngs))
            return RouteOutcome.NO_DATA

        self.cache.set_many({external_id: coordinates})
        log.info("Route cached", points=len(coordinates))
        return RouteOutcome.FETCHED
