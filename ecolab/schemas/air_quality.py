"""Schemas for the air-quality tool: query params, latest readings, and the tool result."""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ecolab.core.errors import GeoQueryValidationError


class AirQualityQueryParams(BaseModel):
    """Arguments of get_air_quality_latest. Unknown keys are dropped."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    latitude: float | None = None
    longitude: float | None = None
    radius: float | None = Field(None, description="Meters; clamped to 1..25000 for point queries.")
    bbox: Annotated[list[float], Field(min_length=4, max_length=4)] | None = Field(
        None, description="minLon, minLat, maxLon, maxLat"
    )
    parameter: str | None = Field(None, description="pm25|pm10|o3|no2 etc.")
    # Declared as "number" in the tool schema; truncated to whole numbers when the query is sent
    limit: float | None = None
    page: float | None = None

    @property
    def has_bbox(self) -> bool:
        return self.bbox is not None

    @property
    def has_point(self) -> bool:
        return self.latitude is not None and self.longitude is not None


def validate_geo(params: AirQualityQueryParams) -> None:
    """Ensure caller uses bbox OR (latitude, longitude [+radius]), not both."""
    if params.has_bbox and params.has_point:
        raise GeoQueryValidationError(
            "Geospatial: use either bbox OR (latitude+longitude [+radius]), not both."
        )


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LatestReading(_CamelModel):
    """One 'latest' row for a sensor at a matched location."""

    location_id: int | str
    location_name: str | None = None
    sensor_id: int | str | None = None
    timestamp_utc: str | None = None
    timestamp_local: str | None = None
    value: float | None = None
    parameter_id: int | str | None = None
    coordinates: dict[str, Any] | None = None
    parameter_code: str | None = None


class AirQualityMeta(_CamelModel):
    count: int
    radius: int
    parameter_filtered: bool
    page: int
    limit: int


class AirQualityResult(_CamelModel):
    """Tool output: {meta, results}. count == 0 is a normal 'no data' outcome."""

    meta: AirQualityMeta
    results: list[LatestReading] = Field(default_factory=list)
