#!/usr/bin/env python3
"""
Stream-ingest Markdown (*.md) files from a folder into the vector store.

Run from project root:

    ecolab-ingest              # ./docs (or $DOCS_DIR)
    ecolab-ingest path/to/docs
    python -m ecolab.ingest.cli path/to/docs

Only files directly inside the folder are read (not recursive). Files are
processed one at a time; a file that fails is logged and skipped.
"""

import argparse
import logging
import sys
from pathlib import Path

from ecolab.core.config import COLLECTION_NAME, DOCS_DIR
from ecolab.core.dependencies import get_vector_store
from ecolab.services.ingestion_service import MarkdownIngestor

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ingest Markdown docs into the RAG collection.")
    parser.add_argument(
        "folder",
        nargs="?",
        default=DOCS_DIR,
        help=f"Folder containing .md files (default: {DOCS_DIR}).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)

    folder = Path(args.folder)
    if not folder.is_dir():
        logger.error("Not a directory: %s", folder)
        return 1

    try:
        ingestor = MarkdownIngestor(get_vector_store(), collection=COLLECTION_NAME)
        summary = ingestor.ingest_folder(folder)
    except Exception:
        logger.exception("Ingest failed")
        return 1

    print(
        f"Done. Ingested {summary.chunks_emitted} chunks from {summary.files_ingested} file(s)."
    )
    if summary.failed:
        print(f"Skipped after errors: {', '.join(summary.failed)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
