# Streaming document reader. No embeddings, no vector DB, no chunking.
# Single place for "file -> decoded text blocks".

import codecs
from collections.abc import Iterator
from pathlib import Path

from ecolab.core.config import READ_BLOCK_BYTES


def iter_decoded_blocks(path: str | Path, block_size: int = READ_BLOCK_BYTES) -> Iterator[str]:
    """
    Read a file in fixed-size byte blocks and yield decoded UTF-8 text per block.

    The incremental decoder keeps a multi-byte character split across two
    blocks until its remaining bytes arrive; the final flush yields whatever is
    left (invalid trailing bytes become U+FFFD). The file is closed when the
    generator is exhausted or closed.
    """
    if block_size <= 0:
        raise ValueError("block_size must be positive")
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    with open(path, "rb") as fh:
        while True:
            block = fh.read(block_size)
            if not block:
                break
            text = decoder.decode(block)
            if text:
                yield text
    tail = decoder.decode(b"", final=True)
    if tail:
        yield tail
