"""
Document ingestion: stream Markdown files into the vector store for RAG.

Responsibility: Read each file in byte blocks, decode incrementally, cut the
text into overlapping windows, clean each window, and upsert in small batches.
Memory stays bounded by the window size and batch size, not the file size.
Called by the ingest CLI; no HTTP or FastAPI here.
"""

import logging
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ecolab.core.config import (
    CHUNK_OVERLAP_CHARS,
    CHUNK_SIZE_CHARS,
    READ_BLOCK_BYTES,
    UPSERT_BATCH_SIZE,
)
from ecolab.ingest.loader import iter_decoded_blocks
from ecolab.services.text_processing import clean_markdown, infer_pollutant, window_text
from ecolab.services.vector_store import Chunk

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


class ChunkSink(Protocol):
    """The part of VectorStore the ingestor needs."""

    def get_or_create_collection(self, name: str | None = None) -> str: ...

    def upsert(self, collection: str, chunks: list[Chunk]) -> None: ...


@dataclass
class IngestSummary:
    """Aggregate totals for a folder ingestion."""

    files_ingested: int
    chunks_emitted: int
    failed: list[str]


class MarkdownIngestor:
    """Stream-ingest Markdown files, one at a time, into a collection."""

    def __init__(
        self,
        store: ChunkSink,
        collection: str | None = None,
        chunk_size: int = CHUNK_SIZE_CHARS,
        overlap: int = CHUNK_OVERLAP_CHARS,
        block_size: int = READ_BLOCK_BYTES,
        batch_size: int = UPSERT_BATCH_SIZE,
    ) -> None:
        if overlap < 0 or overlap >= chunk_size:
            raise ValueError("overlap must be in [0, chunk_size)")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._store = store
        self._collection_name = collection
        self._collection: str | None = None
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.block_size = block_size
        self.batch_size = batch_size

    def _get_collection(self) -> str:
        if self._collection is None:
            self._collection = self._store.get_or_create_collection(self._collection_name)
        return self._collection

    def _make_chunk(self, text: str, file_base: str, index: int, pollutant: str | None) -> Chunk:
        metadata = {"source": file_base, "chunk_index": index, "type": "markdown"}
        if pollutant is not None:
            metadata["pollutant"] = pollutant
        return Chunk(id=f"{file_base}#{index}", text=clean_markdown(text), metadata=metadata)

    def _flush(self, pending: list[Chunk]) -> None:
        if pending:
            self._store.upsert(self._get_collection(), list(pending))
            pending.clear()

    def ingest_file(self, path: str | Path) -> int:
        """
        Stream-ingest a single Markdown file. Returns the number of chunks emitted.

        Chunk ids are "<file name>#<index>" with a monotonically increasing index,
        so re-ingesting an unchanged file with the same settings yields the same ids.
        """
        path = Path(path)
        file_base = path.name
        pollutant = infer_pollutant(file_base)
        logger.info("[ingest:file] IN  file=%s pollutant=%s", file_base, pollutant)

        buffer = ""
        index = 0
        pending: list[Chunk] = []

        with closing(iter_decoded_blocks(path, self.block_size)) as blocks:
            for text in blocks:
                buffer += text
                windows, buffer = window_text(buffer, self.chunk_size, self.overlap)
                for window in windows:
                    pending.append(self._make_chunk(window, file_base, index, pollutant))
                    index += 1
                    if len(pending) >= self.batch_size:
                        self._flush(pending)

        # End of stream: the tail is shorter than a window but still indexed
        if buffer.strip():
            pending.append(self._make_chunk(buffer, file_base, index, pollutant))
            index += 1
        self._flush(pending)

        logger.info("[ingest:file] OUT file=%s chunks=%d", file_base, index)
        return index

    def ingest_folder(self, folder: str | Path) -> IngestSummary:
        """
        Ingest every *.md file directly inside folder (not recursive), sequentially.

        A failing file is logged and skipped; the remaining files still run.
        """
        folder = Path(folder)
        files = sorted(
            p for p in folder.iterdir() if p.is_file() and p.suffix.lower() == MARKDOWN_SUFFIX
        )
        if not files:
            logger.warning("No .md files found in: %s", folder)
            return IngestSummary(files_ingested=0, chunks_emitted=0, failed=[])

        files_ingested = 0
        chunks_emitted = 0
        failed: list[str] = []
        for path in files:
            try:
                chunks_emitted += self.ingest_file(path)
                files_ingested += 1
            except Exception as e:
                logger.warning("Failed to ingest %s: %s", path.name, e)
                failed.append(path.name)

        logger.info(
            "Done. Ingested %d chunks from %d file(s) (%d failed)",
            chunks_emitted, files_ingested, len(failed),
        )
        return IngestSummary(files_ingested=files_ingested, chunks_emitted=chunks_emitted, failed=failed)
