"""
Retrieval: semantic search and context building for the agent.

Responsibility: Query the vector store for the top-k passages and format them
as a single "Source N" context block. Retrieval order is kept as-is.
"""

import logging
from typing import Protocol

from ecolab.core.config import RETRIEVAL_TOP_K
from ecolab.schemas.chat import Passage

logger = logging.getLogger(__name__)


class PassageSource(Protocol):
    def query(self, collection: str, query_text: str, k: int = 5) -> list[Passage]: ...


def retrieve_passages(
    store: PassageSource, collection: str, query: str, k: int = RETRIEVAL_TOP_K
) -> list[Passage]:
    """Top-k passages for the query, nearest first. Blank queries return []."""
    logger.info("[retrieval:retrieve_passages] IN  query=%r k=%d", query, k)
    if not query or not query.strip():
        return []
    passages = store.query(collection, query, k)
    logger.info(
        "[retrieval:retrieve_passages] OUT passages=%d first_sources=%s first_scores=%s",
        len(passages),
        [(p.metadata or {}).get("source") for p in passages[:5]],
        [round(p.score, 4) for p in passages[:5] if p.score is not None],
    )
    return passages


def build_context(passages: list[Passage]) -> str:
    """Join passages into one block, each headed "# Source N" in retrieval order."""
    return "\n\n".join(f"# Source {i}\n{p.text}" for i, p in enumerate(passages, 1))
