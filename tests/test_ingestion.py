"""
Tests for streaming Markdown ingestion (MarkdownIngestor) against an in-memory store.
"""

from pathlib import Path

import pytest

from ecolab.services.ingestion_service import MarkdownIngestor
from ecolab.services.vector_store import Chunk

ALPHABET = "abcdefghijklmnopqrstuvwxyz"


class FakeStore:
    """Records upsert batches; rows are keyed by chunk id like the real store."""

    def __init__(self, fail_for: str | None = None) -> None:
        self.fail_for = fail_for
        self.collections: list[str | None] = []
        self.batches: list[list[Chunk]] = []
        self.rows: dict[str, Chunk] = {}

    def get_or_create_collection(self, name: str | None = None) -> str:
        self.collections.append(name)
        return name or "ecolab_rag"

    def upsert(self, collection: str, chunks: list[Chunk]) -> None:
        if self.fail_for and any(c.metadata.get("source") == self.fail_for for c in chunks):
            raise RuntimeError("embedding service down")
        self.batches.append(list(chunks))
        for c in chunks:
            self.rows[c.id] = c


def _write(folder: Path, name: str, text: str) -> Path:
    path = folder / name
    path.write_text(text, encoding="utf-8")
    return path


class TestIngestFile:
    """Tests for MarkdownIngestor.ingest_file()."""

    def test_windows_tail_and_batches(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "f.md", ALPHABET)
        store = FakeStore()
        ingestor = MarkdownIngestor(store, chunk_size=10, overlap=3, block_size=4, batch_size=2)

        assert ingestor.ingest_file(path) == 4

        assert [len(b) for b in store.batches] == [2, 2]
        chunks = [c for b in store.batches for c in b]
        assert [c.id for c in chunks] == ["f.md#0", "f.md#1", "f.md#2", "f.md#3"]
        assert [c.text for c in chunks] == ["abcdefghij", "hijklmnopq", "opqrstuvwx", "vwxyz"]
        assert [c.metadata["chunk_index"] for c in chunks] == [0, 1, 2, 3]

    def test_default_settings_window_1200_overlap_200(self, tmp_path: Path) -> None:
        text = "".join(ALPHABET[i % 26] for i in range(3000))
        path = _write(tmp_path, "long.md", text)
        store = FakeStore()

        assert MarkdownIngestor(store).ingest_file(path) == 3

        chunks = [c for b in store.batches for c in b]
        assert [len(c.text) for c in chunks] == [1200, 1200, 1000]
        assert chunks[0].text == text[:1200]
        assert chunks[1].text == text[1000:2200]
        assert chunks[2].text == text[2000:]
        assert chunks[0].text[-200:] == chunks[1].text[:200]

    def test_batches_hold_at_most_sixteen_chunks(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "many.md", "x" * 400)
        store = FakeStore()
        ingestor = MarkdownIngestor(store, chunk_size=10, overlap=0, block_size=7)

        assert ingestor.ingest_file(path) == 40
        assert [len(b) for b in store.batches] == [16, 16, 8]

    def test_multibyte_text_survives_tiny_blocks(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "pm25.md", "µ³" * 30)
        store = FakeStore()
        MarkdownIngestor(store, chunk_size=10, overlap=2, block_size=3).ingest_file(path)

        chunks = [c for b in store.batches for c in b]
        assert chunks
        for c in chunks:
            assert set(c.text) <= {"µ", "³"}

    def test_markdown_is_cleaned_per_window(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "doc.md", "# Ozone\n\nGround-level **ozone** forms in sunlight.\n")
        store = FakeStore()
        MarkdownIngestor(store).ingest_file(path)

        [chunk] = store.rows.values()
        assert chunk.text == "Ozone\n\nGround-level ozone forms in sunlight."

    def test_metadata_carries_source_type_and_pollutant(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "PM2.5_guidelines.md", "Annual mean guideline is 5 µg/m³.")
        store = FakeStore()
        MarkdownIngestor(store).ingest_file(path)

        [chunk] = store.rows.values()
        assert chunk.metadata == {
            "source": "PM2.5_guidelines.md",
            "chunk_index": 0,
            "type": "markdown",
            "pollutant": "pm2.5",
        }

    def test_pollutant_omitted_when_filename_has_none(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "general.md", "Air quality basics.")
        store = FakeStore()
        MarkdownIngestor(store).ingest_file(path)

        [chunk] = store.rows.values()
        assert "pollutant" not in chunk.metadata

    def test_reingest_yields_same_ids_and_text(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "no2.md", ALPHABET * 5)
        store = FakeStore()
        ingestor = MarkdownIngestor(store, chunk_size=20, overlap=5, block_size=9)

        first = ingestor.ingest_file(path)
        snapshot = {cid: c.text for cid, c in store.rows.items()}
        second = ingestor.ingest_file(path)

        assert first == second
        assert {cid: c.text for cid, c in store.rows.items()} == snapshot

    def test_blank_file_emits_nothing(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "blank.md", "   \n\n")
        store = FakeStore()

        assert MarkdownIngestor(store).ingest_file(path) == 0
        assert store.batches == []

    def test_collection_is_resolved_once(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "f.md", ALPHABET)
        store = FakeStore()
        MarkdownIngestor(store, collection="docs", chunk_size=5, overlap=0, batch_size=1).ingest_file(path)

        assert store.collections == ["docs"]

    @pytest.mark.parametrize("chunk_size,overlap,batch_size", [(10, 10, 1), (10, -1, 1), (10, 2, 0)])
    def test_invalid_settings_raise(self, chunk_size: int, overlap: int, batch_size: int) -> None:
        with pytest.raises(ValueError):
            MarkdownIngestor(FakeStore(), chunk_size=chunk_size, overlap=overlap, batch_size=batch_size)


class TestIngestFolder:
    """Tests for MarkdownIngestor.ingest_folder()."""

    def test_only_markdown_files_directly_in_folder(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.md", "alpha")
        _write(tmp_path, "E.MD", "echo")
        _write(tmp_path, "notes.txt", "ignored")
        (tmp_path / "sub").mkdir()
        _write(tmp_path / "sub", "d.md", "nested")
        store = FakeStore()

        summary = MarkdownIngestor(store).ingest_folder(tmp_path)

        assert summary.files_ingested == 2
        assert summary.chunks_emitted == 2
        assert summary.failed == []
        assert sorted(c.metadata["source"] for c in store.rows.values()) == ["E.MD", "a.md"]

    def test_failing_file_is_skipped_and_others_continue(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.md", "alpha")
        _write(tmp_path, "b.md", "bravo")
        _write(tmp_path, "c.md", "charlie")
        store = FakeStore(fail_for="b.md")

        summary = MarkdownIngestor(store).ingest_folder(tmp_path)

        assert summary.files_ingested == 2
        assert summary.chunks_emitted == 2
        assert summary.failed == ["b.md"]
        assert set(store.rows) == {"a.md#0", "c.md#0"}

    def test_empty_folder_returns_zero_totals(self, tmp_path: Path) -> None:
        summary = MarkdownIngestor(FakeStore()).ingest_folder(tmp_path)

        assert (summary.files_ingested, summary.chunks_emitted, summary.failed) == (0, 0, [])
