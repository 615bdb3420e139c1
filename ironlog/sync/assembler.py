"""
GeoJSON assembly: stored activities + cached routes -> published map.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

import geojson

from ironlog.store import DocumentStore, StoredDocument
from ironlog.sync.coordinates import is_lng_lat
from ironlog.sync.map_cache import MapCache
from ironlog.sync.models import MapDocument
from ironlog.utils.logger import LoggerMixin

# geojson rounds to 6 places by default; keep cached values as they are.
COORD_PRECISION = 15


def build_feature_collection(
    activities: Iterable[StoredDocument], cache: MapCache
) -> geojson.FeatureCollection:
    """One LineString feature per stored activity that has a cached route.

    Activities without a cache entry are left out, as are malformed cached
    points. Store order is kept and each external id appears at most once.
    """
    features: list[geojson.Feature] = []
    seen: set[str] = set()
    for doc in activities:
        raw_id = doc.data.get("externalId")
        if raw_id in (None, ""):
            continue
        external_id = str(raw_id)
        if external_id in seen:
            continue
        coordinates = [p for p in cache.get(external_id) or () if is_lng_lat(p)]
        if not coordinates:
            continue
        seen.add(external_id)
        features.append(
            geojson.Feature(
                geometry=geojson.LineString(coordinates, precision=COORD_PRECISION),
                properties={"type": doc.data.get("activityType"), "id": external_id},
            )
        )
    return geojson.FeatureCollection(features)


class GeoJSONAssembler(LoggerMixin):
    """Rebuilds the map document from scratch on every call."""

    def __init__(
        self,
        store: DocumentStore,
        cache: MapCache,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self._now = now or (lambda: datetime.now(UTC))

    async def build(self) -> MapDocument:
        activities = await self.store.list_activities()
        collection = build_feature_collection(activities, self.cache)
        features: list[dict[str, Any]] = collection["features"]
        total_points = sum(len(f["geometry"]["coordinates"]) for f in features)
        return MapDocument(
            geo_json=collection,
            total_paths=len(features),
            total_points=total_points,
            updated_at=self._now().isoformat(),
        )

    async def publish(self) -> MapDocument:
        """Replace the published map document with a fresh build."""
        document = await self.build()
        await self.store.set_map_document(document.to_document())
        self.logger.info(
            "Map document published",
            total_paths=document.total_paths,
            total_points=document.total_points,
        )
        return document
