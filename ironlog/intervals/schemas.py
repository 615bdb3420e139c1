"""Typed payloads returned by the Intervals.icu map endpoint."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ActivityMap(BaseModel):
    """Route of one activity as returned by ``/activity/{id}/map``.

    ``latlngs`` is kept untyped: individual points may be malformed and are
    filtered later by the coordinate processor rather than rejected here.
    """

    activity_id: str
    latlngs: list[Any] = Field(default_factory=list)
    bounds: list[Any] | None = None

    @property
    def has_route(self) -> bool:
        return len(self.latlngs) > 0
