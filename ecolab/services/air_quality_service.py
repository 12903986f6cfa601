"""
Air quality: OpenAQ v3 client and the geo-query broadening strategy.

Responsibility: Find locations near a point (or in a bbox), collect their latest
readings, and relax the query step by step until something comes back:

    1) base radius (default 25 km, clamped to 1..25,000 m) WITH parameter filter
    2) same radius WITHOUT filter
    3) min(base + 15 km, 40 km) WITH filter
    4) expanded radius WITHOUT filter

Dropping the parameter filter comes before widening the area because a wider
area is more likely to pull in irrelevant locations.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any, NamedTuple

import httpx

from ecolab.core.config import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    DEFAULT_RADIUS_M,
    MAX_EXPANDED_RADIUS_M,
    MAX_RADIUS_M,
    MIN_RADIUS_M,
    OPENAQ_BASE_URL,
    OPENAQ_TIMEOUT,
    RADIUS_EXPANSION_M,
)
from ecolab.core.errors import (
    ServiceUnavailableError,
    UpstreamClientError,
    UpstreamError,
    UpstreamTransientError,
)
from ecolab.schemas.air_quality import (
    AirQualityMeta,
    AirQualityQueryParams,
    AirQualityResult,
    LatestReading,
    validate_geo,
)

logger = logging.getLogger(__name__)


class LocationRef(NamedTuple):
    id: int | str
    name: str | None


class OpenAQClient:
    """
    Minimal OpenAQ v3 client: /locations search and /locations/{id}/latest.

    HTTP failures are translated into UpstreamClientError (4xx) or
    UpstreamTransientError (timeout, 5xx, network, unreadable body).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = OPENAQ_BASE_URL,
        timeout: float = OPENAQ_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._http = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={"Accept": "application/json", "X-API-Key": api_key},
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def _get(self, path: str, params: Mapping[str, str] | None = None) -> dict[str, Any]:
        if not self._api_key:
            raise ServiceUnavailableError("OPENAQ_API_KEY must be set in .env")
        try:
            response = self._http.get(path, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if 400 <= status < 500:
                raise UpstreamClientError(status, e.response.text) from e
            raise UpstreamTransientError(f"OpenAQ {path} returned {status}") from e
        except httpx.HTTPError as e:
            raise UpstreamTransientError(f"OpenAQ {path} failed: {e!r}") from e
        except ValueError as e:
            raise UpstreamTransientError(f"OpenAQ {path} returned invalid JSON") from e
        return data if isinstance(data, dict) else {}

    def search_locations(self, query: Mapping[str, str]) -> list[LocationRef]:
        data = self._get("/locations", params=query)
        return [
            LocationRef(id=it["id"], name=it.get("name"))
            for it in data.get("results") or []
            if isinstance(it, dict) and it.get("id") is not None
        ]

    def latest_for_location(self, location_id: int | str) -> list[dict[str, Any]]:
        data = self._get(f"/locations/{location_id}/latest")
        return [row for row in data.get("results") or [] if isinstance(row, dict)]


# --- Response schema contract ---
#
# OpenAQ exposes the parameter code under different fields depending on the
# endpoint and version. Extractors are tried in this order; the first non-empty
# value wins. `parameter` may also be an object like {"id": 2, "name": "pm25"}.

def _field(name: str) -> Callable[[Mapping[str, Any]], Any]:
    def extract(row: Mapping[str, Any]) -> Any:
        value = row.get(name)
        if isinstance(value, Mapping):
            return value.get("name")
        return value

    return extract


PARAMETER_CODE_EXTRACTORS: tuple[Callable[[Mapping[str, Any]], Any], ...] = (
    _field("parameter"),
    _field("parameterCode"),
    _field("parametersCode"),
    _field("parameter_name"),
    _field("parametersName"),
)

PARAMETER_ID_EXTRACTORS: tuple[Callable[[Mapping[str, Any]], Any], ...] = (
    _field("parametersId"),
    _field("parameterId"),
)


def _first(row: Mapping[str, Any], extractors: tuple[Callable[[Mapping[str, Any]], Any], ...]) -> Any:
    for extract in extractors:
        value = extract(row)
        if value not in (None, ""):
            return value
    return None


def normalize_parameter(value: Any) -> str | None:
    if value is None:
        return None
    normalized = "".join(str(value).lower().split())
    return normalized or None


def row_matches_parameter(row: Mapping[str, Any], wanted: str | None) -> bool:
    """
    True when the row's parameter code equals `wanted` (normalized).

    Fail-open: a row whose parameter code cannot be determined is kept, so
    inconsistent upstream field naming does not filter everything out.
    """
    want = normalize_parameter(wanted)
    if not want:
        return True
    code = normalize_parameter(_first(row, PARAMETER_CODE_EXTRACTORS))
    return code == want if code else True


def to_latest_reading(row: Mapping[str, Any], location: LocationRef) -> LatestReading:
    when = row.get("datetime") if isinstance(row.get("datetime"), Mapping) else {}
    code = _first(row, PARAMETER_CODE_EXTRACTORS)
    location_id = row.get("locationsId")
    return LatestReading(
        location_id=location_id if location_id is not None else location.id,
        location_name=location.name,
        sensor_id=row.get("sensorsId"),
        timestamp_utc=when.get("utc"),
        timestamp_local=when.get("local"),
        value=row.get("value"),
        parameter_id=_first(row, PARAMETER_ID_EXTRACTORS),
        coordinates=row.get("coordinates"),
        parameter_code=str(code) if code is not None else None,
    )


class BroadeningAttempt(NamedTuple):
    radius: int
    parameter_filtered: bool


def effective_base_radius(radius: float | None) -> int:
    """Requested radius clamped to [1, 25000] meters (25000 when not given)."""
    requested = DEFAULT_RADIUS_M if radius is None else radius
    return round(min(max(requested, MIN_RADIUS_M), MAX_RADIUS_M))


def whole_number(value: float | None, default: int) -> int:
    """limit/page as sent to OpenAQ: fractions truncated, missing or below 1 uses the default."""
    if value is None or value < 1:
        return default
    return int(value)


def broadening_attempts(base_radius: int) -> list[BroadeningAttempt]:
    expanded = min(base_radius + RADIUS_EXPANSION_M, MAX_EXPANDED_RADIUS_M)
    return [
        BroadeningAttempt(base_radius, True),
        BroadeningAttempt(base_radius, False),
        BroadeningAttempt(expanded, True),
        BroadeningAttempt(expanded, False),
    ]


class AirQualityService:
    """Runs the broadening attempts against an OpenAQClient."""

    def __init__(self, client: OpenAQClient) -> None:
        self._client = client

    def close(self) -> None:
        self._client.close()

    def _fetch_attempt(
        self, params: AirQualityQueryParams, radius: int, with_filter: bool
    ) -> list[LatestReading]:
        """One attempt: /locations for bbox OR coordinates+radius, then /latest per location."""
        wanted = params.parameter if with_filter else None
        query: dict[str, str] = {
            "limit": str(whole_number(params.limit, DEFAULT_LIMIT)),
            "page": str(whole_number(params.page, DEFAULT_PAGE)),
            "sort": "desc",
        }
        if params.has_bbox:
            query["bbox"] = ",".join(str(v) for v in params.bbox)
        elif params.has_point:
            query["coordinates"] = f"{params.latitude},{params.longitude}"
            query["radius"] = str(radius)

        locations = self._client.search_locations(query)
        out: list[LatestReading] = []
        for loc in locations:
            try:
                rows = self._client.latest_for_location(loc.id)
                out.extend(
                    to_latest_reading(row, loc) for row in rows if row_matches_parameter(row, wanted)
                )
            except (UpstreamError, ValueError) as e:
                # Partial data is fine: skip locations whose /latest call fails
                logger.warning("[air_quality:attempt] skip location=%s: %s", loc.id, e)
                continue
        return out

    def fetch_latest(
        self, params: AirQualityQueryParams | Mapping[str, Any] | None = None
    ) -> AirQualityResult:
        """
        Latest readings for the query, broadening until at least one row is found.

        Raises GeoQueryValidationError for bbox + point, UpstreamClientError on a
        4xx from /locations (no further attempts). Transient failures move on to
        the next attempt; exhausting all attempts returns count == 0.
        """
        if params is None:
            params = AirQualityQueryParams()
        elif not isinstance(params, AirQualityQueryParams):
            params = AirQualityQueryParams.model_validate(params)
        validate_geo(params)

        page = whole_number(params.page, DEFAULT_PAGE)
        limit = whole_number(params.limit, DEFAULT_LIMIT)
        attempts = broadening_attempts(effective_base_radius(params.radius))
        logger.info("[air_quality:fetch_latest] IN  params=%s", params.model_dump(exclude_none=True))

        for attempt in attempts:
            try:
                rows = self._fetch_attempt(params, attempt.radius, attempt.parameter_filtered)
            except UpstreamTransientError as e:
                logger.warning(
                    "[air_quality:fetch_latest] attempt radius=%d filtered=%s failed: %s",
                    attempt.radius, attempt.parameter_filtered, e,
                )
                continue
            if rows:
                logger.info(
                    "[air_quality:fetch_latest] OUT count=%d radius=%d filtered=%s",
                    len(rows), attempt.radius, attempt.parameter_filtered,
                )
                return AirQualityResult(
                    meta=AirQualityMeta(
                        count=len(rows),
                        radius=attempt.radius,
                        parameter_filtered=attempt.parameter_filtered,
                        page=page,
                        limit=limit,
                    ),
                    results=rows,
                )

        last = attempts[-1]
        logger.info("[air_quality:fetch_latest] OUT no data after %d attempts", len(attempts))
        return AirQualityResult(
            meta=AirQualityMeta(
                count=0,
                radius=last.radius,
                parameter_filtered=last.parameter_filtered,
                page=page,
                limit=limit,
            ),
            results=[],
        )
