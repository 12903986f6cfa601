"""
Agent tools: definitions and execution for tool-calling mode.

Tools: get_air_quality_latest (OpenAQ via AirQualityService).
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from ecolab.core.errors import GeoQueryValidationError
from ecolab.schemas.air_quality import AirQualityQueryParams, AirQualityResult, validate_geo
from ecolab.services.air_quality_service import AirQualityService

logger = logging.getLogger(__name__)

AIR_QUALITY_TOOL = "get_air_quality_latest"

# OpenAI function-calling format: list of tool definitions
AGENT_TOOLS = [
    {
        "type": "function",
        "function": {
            "name": AIR_QUALITY_TOOL,
            "description": "Get latest air quality measurements near a point (latitude, longitude, radius in meters) or within a bbox. Optional filter by parameter (e.g., pm25).",
            "parameters": {
                "type": "object",
                "properties": {
                    "latitude": {"type": "number"},
                    "longitude": {"type": "number"},
                    "radius": {"type": "number", "description": "meters, <= 25000"},
                    "bbox": {
                        "type": "array",
                        "items": {"type": "number"},
                        "minItems": 4,
                        "maxItems": 4,
                        "description": "minLon, minLat, maxLon, maxLat",
                    },
                    "parameter": {"type": "string", "description": "pm25|pm10|o3|no2 etc."},
                    "limit": {"type": "number"},
                    "page": {"type": "number"},
                },
                "additionalProperties": False,
            },
        },
    },
]

KNOWN_TOOLS = frozenset({AIR_QUALITY_TOOL})


@dataclass(frozen=True)
class ParsedArguments:
    params: AirQualityQueryParams


@dataclass(frozen=True)
class ArgumentError:
    reason: str


ArgumentsResult = ParsedArguments | ArgumentError


def parse_tool_arguments(raw: str | dict[str, Any] | None) -> ArgumentsResult:
    """Parse and validate raw tool-call arguments. Never raises."""
    if raw is None or raw == "":
        raw = "{}"
    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError as e:
        return ArgumentError(f"invalid JSON: {e.msg}")
    if not isinstance(data, dict):
        return ArgumentError(f"expected a JSON object, got {type(data).__name__}")
    try:
        params = AirQualityQueryParams.model_validate(data)
        validate_geo(params)
    except (ValidationError, GeoQueryValidationError) as e:
        return ArgumentError(str(e))
    return ParsedArguments(params)


def arguments_or_default(raw: str | dict[str, Any] | None) -> AirQualityQueryParams:
    """Validated params, or empty params when the arguments are unusable."""
    result = parse_tool_arguments(raw)
    if isinstance(result, ArgumentError):
        logger.warning("[tools] bad tool arguments, using defaults: %s", result.reason)
        return AirQualityQueryParams()
    return result.params


def execute_tool(name: str, params: AirQualityQueryParams, air_quality: AirQualityService) -> AirQualityResult:
    """Execute a known tool by name. Callers check KNOWN_TOOLS first."""
    logger.info("[tools] execute_tool name=%r arguments=%r", name, params.model_dump(exclude_none=True))
    if name == AIR_QUALITY_TOOL:
        return air_quality.fetch_latest(params)
    raise KeyError(f"Unknown tool: {name}")
