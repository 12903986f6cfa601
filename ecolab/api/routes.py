"""
API route aggregator: register endpoints; no logic, only delegate to handlers.
"""

import logging

from fastapi import APIRouter, Depends, Request

from ecolab.agent.graph import AirQualityAgent
from ecolab.api.handlers import handle_chat
from ecolab.core.dependencies import get_agent, get_vector_store
from ecolab.schemas.chat import ChatResponse
from ecolab.services.vector_store import VectorStore

logger = logging.getLogger(__name__)
router = APIRouter()


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "EcoLab air-quality agent running"}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


# --- Knowledge base ---

@router.get("/sources", tags=["ingestion"], summary="List documents in the knowledge base")
def get_sources(store: VectorStore = Depends(get_vector_store)) -> dict:
    """Return source file names and the chunk count currently in the vector store."""
    try:
        sources = store.list_sources()
        chunks = store.count()
    except Exception as e:
        logger.warning("Failed to list sources: %s", e)
        sources, chunks = [], 0
    return {"sources": sources, "chunks": chunks}


# --- Chat ---

@router.post(
    "/chat",
    response_model=ChatResponse,
    tags=["chat"],
    summary="Ask the air-quality agent (stateless)",
    description="Send { message }; receive answer, retrieved passages, and the tool invocation (or null). 400 on invalid body, 500 on agent failure.",
)
async def post_chat(request: Request, agent: AirQualityAgent = Depends(get_agent)) -> ChatResponse:
    return await handle_chat(request, agent)
