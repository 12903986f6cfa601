"""
Vector store client: Milvus connection, OpenAI embeddings, and chunk storage.

Responsibility: Embed texts explicitly (the store never embeds on its own),
get-or-create the collection, upsert chunks keyed by their stable ids, and run
nearest-neighbour search. Constructed with its collaborators; no module-level
client.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from openai import OpenAI

from ecolab.core.config import COLLECTION_NAME, EMBED_BATCH_SIZE, OPENAI_EMBED_MODEL, VECTOR_DIM
from ecolab.schemas.chat import Passage

logger = logging.getLogger(__name__)

# Metadata keys stored next to the text; everything else in Chunk.metadata is dropped.
_METADATA_FIELDS = ("source", "chunk_index", "pollutant", "type")


@dataclass(frozen=True)
class Chunk:
    """A slice of a source file prepared for indexing. id is "<fileBase>#<index>"."""

    id: str
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)


class OpenAIEmbedder:
    """Batch embed texts with the OpenAI embeddings endpoint."""

    def __init__(
        self,
        client: OpenAI,
        model: str = OPENAI_EMBED_MODEL,
        batch_size: int = EMBED_BATCH_SIZE,
    ) -> None:
        self._client = client
        self.model = model
        self.batch_size = batch_size

    def embed(self, texts: list[str]) -> list[list[float]]:
        """Return one vector per input text, aligned by index."""
        if not texts:
            return []
        vectors: list[list[float]] = []
        for i in range(0, len(texts), self.batch_size):
            batch = texts[i : i + self.batch_size]
            res = self._client.embeddings.create(input=batch, model=self.model)
            vectors.extend(item.embedding for item in sorted(res.data, key=lambda d: d.index))
        logger.info("[embed] OUT texts=%d model=%s", len(texts), self.model)
        return vectors


class VectorStore:
    """
    Thin wrapper around a pymilvus MilvusClient.

    A collection handle is just its name. Distances are L2, so query results
    come back nearest first with ascending scores.
    """

    def __init__(
        self,
        client: Any,
        embedder: OpenAIEmbedder,
        dimension: int = VECTOR_DIM,
        default_collection: str = COLLECTION_NAME,
    ) -> None:
        self._client = client
        self._embedder = embedder
        self.dimension = dimension
        self.default_collection = default_collection

    def embed(self, texts: list[str]) -> list[list[float]]:
        return self._embedder.embed(texts)

    def get_or_create_collection(self, name: str | None = None) -> str:
        name = name or self.default_collection
        if not self._client.has_collection(name):
            self._client.create_collection(
                collection_name=name,
                dimension=self.dimension,
                primary_field_name="id",
                id_type="string",
                max_length=512,
                vector_field_name="vector",
                metric_type="L2",
                auto_id=False,
            )
            logger.info("Collection %s created (dim=%s)", name, self.dimension)
        return name

    def upsert(
        self,
        collection: str,
        chunks: list[Chunk],
        embeddings: list[list[float]] | None = None,
    ) -> None:
        """
        Write chunks with explicit embeddings. Rows are keyed by chunk id, so
        re-ingesting an unchanged file overwrites instead of duplicating.
        """
        if not chunks:
            return
        if embeddings is None:
            embeddings = self.embed([c.text for c in chunks])
        if len(embeddings) != len(chunks):
            raise ValueError(f"Got {len(embeddings)} embeddings for {len(chunks)} chunks")

        rows = []
        for c, emb in zip(chunks, embeddings):
            row: dict[str, Any] = {"id": c.id, "vector": emb, "text": c.text}
            for key in _METADATA_FIELDS:
                value = c.metadata.get(key)
                if value is not None:
                    row[key] = value
            rows.append(row)

        self._client.upsert(collection_name=collection, data=rows)
        self._client.flush(collection_name=collection)
        logger.info("Embedded and upserted %d chunks into %s", len(rows), collection)

    def query(self, collection: str, query_text: str, k: int = 5) -> list[Passage]:
        """Embed the query and return the top-k passages, nearest first."""
        [query_vec] = self.embed([query_text])
        results = self._client.search(
            collection_name=collection,
            data=[query_vec],
            limit=k,
            output_fields=["text", *_METADATA_FIELDS],
        )
        # results: list of list of hits (one list per query vector)
        hits = results[0] if results else []
        passages = []
        for h in hits:
            entity = dict(h.get("entity") or {})
            text = entity.pop("text", "") or ""
            passages.append(
                Passage(
                    id=str(h.get("id")) if h.get("id") is not None else None,
                    text=text,
                    score=float(h.get("distance", 0.0)),
                    metadata=entity or None,
                )
            )
        return sorted(passages, key=lambda p: p.score if p.score is not None else 0.0)

    def list_sources(self, collection: str | None = None, limit: int = 16_384) -> list[str]:
        """Distinct source file names in the collection."""
        name = collection or self.default_collection
        if not self._client.has_collection(name):
            return []
        rows = self._client.query(collection_name=name, filter="", limit=limit, output_fields=["source"])
        return sorted({(r.get("source") or "").strip() for r in rows if (r.get("source") or "").strip()})

    def count(self, collection: str | None = None) -> int:
        name = collection or self.default_collection
        if not self._client.has_collection(name):
            return 0
        stats = self._client.get_collection_stats(collection_name=name)
        return int(stats.get("row_count", 0))
