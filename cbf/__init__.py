"""
CBF — chunked binary container writer for multi-stream sequence corpora.

Features:

- Per-stream dense or sparse encoding of variable-length sequences (float32/float64).
- Chunk-at-a-time appends with validation before any byte reaches the sink.
- Trailing footer with stream table and chunk index, located through an
  8-byte trailer so readers can seek without scanning.

The byte layout is fixed; see cbf.footer and cbf.encoder for the exact fields.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "errors",
    "streams",
    "encoder",
    "validate",
    "footer",
    "writer",
]

# Programmatic API lives in cbf.writer (ContainerWriter, write_container) and
# cbf.streams (StreamDescriptor, DataType).
