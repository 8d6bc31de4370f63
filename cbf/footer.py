from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .constants import (
    CHUNK_ENTRY_STRUCT,
    FOOTER_HDR_STRUCT,
    FORMAT_VERSION,
    MAGIC_NUMBER,
    PREFIX_STRUCT,
    STREAM_DENSE,
    STREAM_HDR_STRUCT,
    STREAM_SPARSE,
    STREAM_TAIL_STRUCT,
    TRAILER_STRUCT,
    U32_MAX,
)
from .streams import StreamDescriptor


# Footer layout (little endian), written once at close:
#   magic u64, chunk_count u32, stream_count u32
#   per stream:  sparse u8, name_len u32, name[name_len], dtype u8, dimension u32
#   per chunk:   offset u64, sequence_count u32, total_sample_count u32
#   trailer:     footer_offset u64 (last 8 bytes of the file)


@dataclass(frozen=True)
class ChunkIndexEntry:
    offset: int
    sequence_count: int
    total_sample_count: int


@dataclass(frozen=True)
class ContainerSummary:
    footer_offset: int
    chunk_count: int
    stream_count: int
    total_bytes: int


def pack_prefix(version: int = FORMAT_VERSION) -> bytes:
    return PREFIX_STRUCT.pack(MAGIC_NUMBER, version)


def pack_stream_header(stream: StreamDescriptor) -> bytes:
    name = stream.name_bytes
    return (
        STREAM_HDR_STRUCT.pack(STREAM_SPARSE if stream.sparse else STREAM_DENSE, len(name))
        + name
        + STREAM_TAIL_STRUCT.pack(int(stream.data_type), stream.dimension)
    )


def pack_chunk_entry(entry: ChunkIndexEntry) -> bytes:
    return CHUNK_ENTRY_STRUCT.pack(entry.offset, entry.sequence_count, entry.total_sample_count)


def build_footer(
    streams: Sequence[StreamDescriptor],
    chunks: Sequence[ChunkIndexEntry],
    footer_offset: int,
) -> bytes:
    """Serialize the footer and trailing footer offset.

    ``footer_offset`` is the absolute position at which the returned bytes
    will be written; it is repeated as the final 8 bytes.
    """
    if len(chunks) > U32_MAX:
        raise ValueError("too many chunks for a 32-bit chunk count")
    out = bytearray(FOOTER_HDR_STRUCT.pack(MAGIC_NUMBER, len(chunks), len(streams)))
    for s in streams:
        out += pack_stream_header(s)
    for c in chunks:
        out += pack_chunk_entry(c)
    out += TRAILER_STRUCT.pack(footer_offset)
    return bytes(out)
