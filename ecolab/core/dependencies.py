"""
Composition: build the long-lived collaborators from configuration.

The only place that reads config to construct clients. Each getter is cached so
one instance is shared across requests; the API injects them with Depends and
tests swap them through app.dependency_overrides.
"""

import logging
from functools import lru_cache
from pathlib import Path

from openai import OpenAI
from pymilvus import MilvusClient

from ecolab.agent.graph import AirQualityAgent
from ecolab.agent.llm import ChatLLM
from ecolab.core.config import (
    COLLECTION_NAME,
    LLM_API_TIMEOUT,
    MILVUS_TOKEN,
    MILVUS_URI,
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
    OPENAQ_API_KEY,
    OPENAQ_BASE_URL,
    OPENAQ_TIMEOUT,
    VECTOR_DIM,
)
from ecolab.core.errors import ServiceUnavailableError
from ecolab.services.air_quality_service import AirQualityService, OpenAQClient
from ecolab.services.vector_store import OpenAIEmbedder, VectorStore

logger = logging.getLogger(__name__)


@lru_cache
def get_openai_client() -> OpenAI:
    if not OPENAI_API_KEY:
        raise ServiceUnavailableError("OPENAI_API_KEY must be set in .env")
    return OpenAI(api_key=OPENAI_API_KEY, base_url=OPENAI_BASE_URL, timeout=LLM_API_TIMEOUT)


@lru_cache
def get_vector_store() -> VectorStore:
    if not MILVUS_URI.startswith(("http://", "https://", "tcp://")):
        # Milvus Lite: local database file
        Path(MILVUS_URI).parent.mkdir(parents=True, exist_ok=True)
    try:
        client = MilvusClient(uri=MILVUS_URI, token=MILVUS_TOKEN)
    except Exception as e:
        raise ServiceUnavailableError(f"Milvus unreachable at {MILVUS_URI}: {e}") from e
    logger.info("Milvus connection established uri=%s", MILVUS_URI)
    return VectorStore(
        client,
        OpenAIEmbedder(get_openai_client()),
        dimension=VECTOR_DIM,
        default_collection=COLLECTION_NAME,
    )


@lru_cache
def get_llm() -> ChatLLM:
    return ChatLLM(get_openai_client())


@lru_cache
def get_air_quality_service() -> AirQualityService:
    return AirQualityService(
        OpenAQClient(api_key=OPENAQ_API_KEY, base_url=OPENAQ_BASE_URL, timeout=OPENAQ_TIMEOUT)
    )


@lru_cache
def get_agent() -> AirQualityAgent:
    store = get_vector_store()
    return AirQualityAgent(
        store=store,
        collection=store.get_or_create_collection(COLLECTION_NAME),
        llm=get_llm(),
        air_quality=get_air_quality_service(),
    )
