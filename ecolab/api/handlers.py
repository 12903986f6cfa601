"""
API handlers: read request data, call the agent, map results/errors to HTTP.

Responsibility: Bridge HTTP types and services. Marshalling and exception-to-HTTP
mapping. Lives in the API layer so services stay free of FastAPI/HTTP types.
"""

import asyncio
import logging

from fastapi import HTTPException, Request
from pydantic import ValidationError

from ecolab.agent.graph import AirQualityAgent
from ecolab.core.errors import GeoQueryValidationError, ServiceUnavailableError, UpstreamClientError
from ecolab.schemas.chat import ChatRequest, ChatResponse

logger = logging.getLogger(__name__)

BAD_BODY = "Body must include { message: string }"


async def read_chat_request(request: Request) -> ChatRequest:
    """Parse the body by hand so a missing or non-string message is a 400, not a 422."""
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail=BAD_BODY)
    try:
        return ChatRequest.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=BAD_BODY) from e


async def handle_chat(request: Request, agent: AirQualityAgent) -> ChatResponse:
    """
    Run one agent turn off the event loop and map failures:
    400 bad input, 502 provider rejected the query, 503 collaborator missing,
    500 anything else (no internals in the response).
    """
    body = await read_chat_request(request)
    logger.info("[api:chat] IN  message=%r", body.message)
    try:
        response = await asyncio.to_thread(agent.answer, body.message)
    except UpstreamClientError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    except ServiceUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.message) from e
    except GeoQueryValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.exception("Agent failed")
        raise HTTPException(status_code=500, detail="Internal error") from e
    logger.info("[api:chat] OUT tool=%s answer_len=%d", response.tool.name if response.tool else None, len(response.answer))
    return response
