"""
Text processing for RAG: windowed chunking, Markdown cleaning, pollutant tagging.

Chunking is done on raw Markdown with fixed-size overlapping windows so the
ingestor can stream a file and keep only the unconsumed tail in memory. Cleaning
is applied per window afterwards, never to the whole document.
"""

import re
from collections.abc import Iterator
from pathlib import Path


def window_text(buffer: str, chunk_size: int, overlap: int) -> tuple[Iterator[str], str]:
    """
    Split buffer into fixed-length windows that share `overlap` chars.

    Returns (windows, tail). Windows are produced lazily while at least
    chunk_size chars remain past the cursor; each window starts
    chunk_size - overlap chars after the previous one. tail is the unconsumed
    remainder (shorter than chunk_size) starting at the cursor, so the caller can
    append more text to it and call again without re-scanning emitted windows.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError("overlap must be in [0, chunk_size)")

    step = chunk_size - overlap
    count = (len(buffer) - chunk_size) // step + 1 if len(buffer) >= chunk_size else 0
    cursor_end = count * step

    def _windows() -> Iterator[str]:
        for i in range(count):
            start = i * step
            yield buffer[start : start + chunk_size]

    return _windows(), buffer[cursor_end:]


# Order matters: fences before inline code, images before links, bold before italics.
_MARKDOWN_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"```.*?```", re.DOTALL), " "),
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"!\[([^\]]*)\]\([^)]*\)"), r"\1"),
    (re.compile(r"\[([^\]]+)\]\([^)]*\)"), r"\1"),
    (re.compile(r"^#{1,6}\s+", re.MULTILINE), ""),
    (re.compile(r"(\*\*|__)(.*?)\1"), r"\2"),
    (re.compile(r"(\*|_)(.*?)\1"), r"\2"),
    (re.compile(r"[ \t]+\n"), "\n"),
    (re.compile(r"\n{3,}"), "\n\n"),
)


def clean_markdown(md: str) -> str:
    """
    Lightweight Markdown -> plain text, safe to run on a single chunk.

    Drops code fences, unwraps inline code, images and links (keeping their
    text), removes heading and emphasis markers, trims trailing spaces and
    collapses runs of blank lines.
    """
    if not md:
        return ""
    text = md
    for pattern, repl in _MARKDOWN_RULES:
        text = pattern.sub(repl, text)
    return text.strip()


# (filename substrings, tag); first match wins
POLLUTANT_TAGS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("pm2.5", "pm2_5", "pm25"), "pm2.5"),
    (("pm10",), "pm10"),
    (("o3", "ozone"), "o3"),
    (("no2", "nitrogen-dioxide"), "no2"),
)


def infer_pollutant(filename: str) -> str | None:
    """Infer a pollutant tag from a file name (case-insensitive). None when nothing matches."""
    base = Path(filename).name.lower()
    for needles, tag in POLLUTANT_TAGS:
        if any(n in base for n in needles):
            return tag
    return None
