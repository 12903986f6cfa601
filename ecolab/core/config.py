"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Only ecolab.core.dependencies and the entry points read these; core
classes receive their options through constructors.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Markdown ingestion (tuning these affects retrieval quality)
DOCS_DIR: str = os.getenv("DOCS_DIR", "./docs").strip() or "./docs"
CHUNK_SIZE_CHARS: int = 1200
CHUNK_OVERLAP_CHARS: int = 200
READ_BLOCK_BYTES: int = 64 * 1024
UPSERT_BATCH_SIZE: int = 16

# Milvus (local Milvus Lite file by default, Milvus/Zilliz Cloud when a URI is set)
MILVUS_URI: str = os.getenv("MILVUS_URI", "").strip() or "./data/ecolab_milvus.db"
MILVUS_TOKEN: str = os.getenv("MILVUS_TOKEN", "").strip()
COLLECTION_NAME: str = os.getenv("COLLECTION_NAME", "ecolab_rag").strip() or "ecolab_rag"

# Embeddings (text-embedding-3-large = 3072 dims)
OPENAI_EMBED_MODEL: str = (
    os.getenv("OPENAI_EMBED_MODEL", "text-embedding-3-large").strip() or "text-embedding-3-large"
)
VECTOR_DIM: int = int(os.getenv("VECTOR_DIM", "3072"))
EMBED_BATCH_SIZE: int = 64

# OpenAI (agent LLM + embeddings)
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL", "").strip() or None
OPENAI_LLM_MODEL: str = (
    os.getenv("OPENAI_LLM_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
)
LLM_TEMPERATURE: float = 0.2
LLM_API_TIMEOUT: float = 60.0

# Agent
RETRIEVAL_TOP_K: int = 6
TOOL_RESULT_MAX_CHARS: int = 15_000

# OpenAQ v3 (latest air-quality readings)
OPENAQ_API_KEY: str = os.getenv("OPENAQ_API_KEY", "").strip()
OPENAQ_BASE_URL: str = (
    os.getenv("OPENAQ_BASE_URL", "https://api.openaq.org/v3").strip() or "https://api.openaq.org/v3"
)
OPENAQ_TIMEOUT: float = 20.0

# Geo-query broadening (meters)
DEFAULT_RADIUS_M: int = 25_000
MIN_RADIUS_M: int = 1
MAX_RADIUS_M: int = 25_000
RADIUS_EXPANSION_M: int = 15_000
MAX_EXPANDED_RADIUS_M: int = 40_000
DEFAULT_LIMIT: int = 20
DEFAULT_PAGE: int = 1

# HTTP
PORT: int = int(os.getenv("PORT", "8787"))
CORS_ORIGINS: list[str] = [
    o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
]
