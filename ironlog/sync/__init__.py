"""Activity sync, dedup and route map pipeline"""

from ironlog.sync.assembler import GeoJSONAssembler, build_feature_collection
from ironlog.sync.coordinates import DOWNSAMPLE_STRIDE, process_coordinates
from ironlog.sync.engine import SyncEngine, SyncInProgressError
from ironlog.sync.map_cache import JsonFileMapCache, MapCache, MemoryMapCache
from ironlog.sync.models import (
    MAPPABLE_TYPES,
    ActivityRecord,
    ActivityType,
    MapDocument,
    RouteBatchResult,
    RouteOutcome,
    RouteRequest,
    SyncReport,
    WellnessRecord,
)
from ironlog.sync.normalizer import (
    map_source_type,
    normalize_activities,
    normalize_activity,
    normalize_wellness,
)
from ironlog.sync.rate_limiter import FixedIntervalRateLimiter
from ironlog.sync.route_batcher import RouteFetchBatcher

__all__ = [
    "DOWNSAMPLE_STRIDE",
    "MAPPABLE_TYPES",
    "ActivityRecord",
    "ActivityType",
    "FixedIntervalRateLimiter",
    "GeoJSONAssembler",
    "JsonFileMapCache",
    "MapCache",
    "MapDocument",
    "MemoryMapCache",
    "RouteBatchResult",
    "RouteFetchBatcher",
    "RouteOutcome",
    "RouteRequest",
    "SyncEngine",
    "SyncInProgressError",
    "SyncReport",
    "WellnessRecord",
    "build_feature_collection",
    "map_source_type",
    "normalize_activities",
    "normalize_activity",
    "normalize_wellness",
    "process_coordinates",
]
