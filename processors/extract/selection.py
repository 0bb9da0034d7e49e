# -*- coding: utf-8 -*-
"""
Pydantic models describing which part of a feed to extract.

A selection names entities to include and to exclude, an optional WGS84
bounding box whose stops are included, and optional route types.
"""

from typing import Any, List, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    confloat,
    conint,
    field_validator,
    model_validator,
)

from processors.extract.errors import SelectionError


class EntityRef(BaseModel):
    """A (table, entity_id) pair as given by the caller, e.g. ("routes.txt", "10")."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    table: str = Field(min_length=1)
    entity_id: str = Field(min_length=1)

    def __str__(self) -> str:
        return f"{self.table}:{self.entity_id}"


class BoundingBox(BaseModel):
    """
    WGS84 bounding box in degrees.

    Attributes:
        min_lon: Western edge.
        min_lat: Southern edge.
        max_lon: Eastern edge.
        max_lat: Northern edge.
    """
    model_config = ConfigDict(frozen=True)

    min_lon: confloat(ge=-180, le=180)
    min_lat: confloat(ge=-90, le=90)
    max_lon: confloat(ge=-180, le=180)
    max_lat: confloat(ge=-90, le=90)

    @model_validator(mode="after")
    def check_corners(self) -> "BoundingBox":
        """Validate that the minimum corner is south-west of the maximum corner."""
        if self.min_lon > self.max_lon or self.min_lat > self.max_lat:
            raise ValueError(
                "Bounding box minimum corner must not exceed its maximum corner."
            )
        return self

    @classmethod
    def from_string(cls, value: str) -> "BoundingBox":
        """
        Parse "min_lon,min_lat,max_lon,max_lat".

        Raises:
            SelectionError: If the string is malformed or out of range.
        """
        parts = [p.strip() for p in str(value).split(",")]
        if len(parts) != 4:
            raise SelectionError(
                f"Invalid bbox '{value}': expected min_lon,min_lat,max_lon,max_lat"
            )
        try:
            min_lon, min_lat, max_lon, max_lat = (float(p) for p in parts)
            return cls(
                min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat
            )
        except (ValueError, ValidationError) as e:
            raise SelectionError(f"Invalid bbox '{value}': {e}", original_error=e) from e

    def contains(self, lon: float, lat: float) -> bool:
        """Return True if the point lies inside the box or on its edge."""
        return self.min_lon <= lon <= self.max_lon and self.min_lat <= lat <= self.max_lat

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.min_lon, self.min_lat, self.max_lon, self.max_lat)


class SelectionSpec(BaseModel):
    """
    What to extract from a feed.

    Attributes:
        include: Entities whose dependents and dependencies are extracted.
        exclude: Entities removed together with everything depending on them.
        bbox: Stops inside this box are included.
        include_route_types: Routes of these types are included.
        exclude_route_types: Routes of these types are excluded.
        clip_to_bbox: Drop stops outside `bbox` from the result.
    """
    include: List[EntityRef] = Field(default_factory=list)
    exclude: List[EntityRef] = Field(default_factory=list)
    bbox: Optional[BoundingBox] = None
    include_route_types: List[conint(ge=0)] = Field(default_factory=list)
    exclude_route_types: List[conint(ge=0)] = Field(default_factory=list)
    clip_to_bbox: bool = True

    @field_validator("bbox", mode="before")
    @classmethod
    def parse_bbox_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return BoundingBox.from_string(value)
        return value

    @property
    def selects_subset(self) -> bool:
        """True if anything narrows the selection; otherwise the whole feed is selected."""
        return bool(self.include or self.bbox or self.include_route_types)

    def count(self) -> int:
        """Number of selection criteria given."""
        return (
            len(self.include)
            + len(self.exclude)
            + len(self.include_route_types)
            + len(self.exclude_route_types)
            + (1 if self.bbox else 0)
        )
