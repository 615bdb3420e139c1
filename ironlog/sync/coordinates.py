"""
Route point processing: fixed-stride downsampling and (lat, lng) -> (lng, lat).
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

DOWNSAMPLE_STRIDE = 5

LngLat = list[float]


def _as_coordinate(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return value


def _first_present(point: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in point and point[key] is not None:
            return point[key]
    return None


def to_lng_lat(point: Any) -> LngLat | None:
    """Convert one source point to ``[lng, lat]``, or ``None`` if malformed.

    Accepts ``[lat, lng, ...]`` sequences and ``{lat, lng|lon}`` mappings.
    """
    if isinstance(point, Mapping):
        lat = _as_coordinate(point.get("lat"))
        lng = _as_coordinate(_first_present(point, "lng", "lon"))
    elif isinstance(point, Sequence) and not isinstance(point, (str, bytes)):
        if len(point) < 2:
            return None
        lat = _as_coordinate(point[0])
        lng = _as_coordinate(point[1])
    else:
        return None

    if lat is None or lng is None:
        return None
    return [lng, lat]


def process_coordinates(points: Any, stride: int = DOWNSAMPLE_STRIDE) -> list[LngLat]:
    """Keep every ``stride``-th point (0, 5, 10, ...) and swap to ``[lng, lat]``.

    Malformed points are dropped rather than replaced, so the output may be
    shorter than ``ceil(len(points) / stride)``. Anything that is not a
    sequence of points yields an empty list.
    """
    if stride < 1:
        raise ValueError("stride must be positive")
    if isinstance(points, (str, bytes, Mapping)) or not isinstance(points, Sequence):
        return []

    processed: list[LngLat] = []
    for index in range(0, len(points), stride):
        coordinate = to_lng_lat(points[index])
        if coordinate is not None:
            processed.append(coordinate)
    return processed


def is_lng_lat(point: Any) -> bool:
    """True for a ``[lng, lat]`` pair of finite numbers."""
    if not isinstance(point, Sequence) or isinstance(point, (str, bytes)):
        return False
    return len(point) == 2 and all(_as_coordinate(v) is not None for v in point)
