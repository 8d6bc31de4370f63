from __future__ import annotations

import io
import os
from typing import BinaryIO, Iterable, List, Optional, Sequence, Tuple, Union

from .encoder import SequenceEncoder, StreamBatch, max_sequence_lengths, pack_max_lengths
from .errors import ChunkValidationError, ContainerClosed, InvalidStreamDescriptor
from .footer import ChunkIndexEntry, ContainerSummary, build_footer, pack_prefix
from .logging_config import get_logger
from .streams import StreamDescriptor
from .validate import ChunkData, ChunkValidator


log = get_logger(__name__)

PathOrSink = Union[str, "os.PathLike[str]", BinaryIO]


class ContainerWriter:
    """Append-only writer for chunked multi-stream containers.

    The prefix (magic, version) is written on construction. Each ``add_chunk``
    validates and encodes the whole chunk in memory, then appends it with a
    single write and records its index entry. ``close`` writes the footer
    (stream table, chunk index, trailing footer offset) exactly once and
    releases the sink.

    ``sink`` may be a filesystem path, which the writer opens and owns, or a
    writable binary file object. Offsets are absolute sink positions: the
    running offset starts at the sink's current ``tell()``, or at 0 for
    non-seekable sinks such as pipes.
    """

    def __init__(
        self,
        streams: Iterable[StreamDescriptor],
        sink: PathOrSink,
        *,
        close_sink: bool = True,
        durable: bool = False,
    ):
        self._streams: Tuple[StreamDescriptor, ...] = tuple(streams)
        if not self._streams:
            raise InvalidStreamDescriptor("a container needs at least one stream")
        for s in self._streams:
            if not isinstance(s, StreamDescriptor):
                raise InvalidStreamDescriptor(f"expected StreamDescriptor, got {type(s).__name__}")
        self._validator = ChunkValidator(self._streams)
        self._encoders = [SequenceEncoder(s) for s in self._streams]
        self._sink = sink
        self.close_sink = close_sink
        self.durable = durable
        self.f: Optional[BinaryIO] = None
        self._owns_sink = False
        self.offset = 0
        self._chunks: List[ChunkIndexEntry] = []
        self._closed = False
        self._failed = False
        self._summary: Optional[ContainerSummary] = None
        self.open()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        # A rejected chunk leaves the container consistent; only a failed
        # write has already released the sink without a footer.
        if self._failed:
            return
        if exc is None:
            self.close()
            return
        try:
            self.close()
        except Exception as close_exc:
            # the in-flight exception wins
            log.warning("close_failed_during_unwind", error=str(close_exc), pending=type(exc).__name__)

    @property
    def streams(self) -> Tuple[StreamDescriptor, ...]:
        return self._streams

    @property
    def chunks(self) -> Tuple[ChunkIndexEntry, ...]:
        return tuple(self._chunks)

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self):
        if self.f is not None or self._closed:
            return
        if isinstance(self._sink, (str, os.PathLike)):
            self.f = open(self._sink, "wb")
            self._owns_sink = True
        else:
            self.f = self._sink
        self.offset = self._start_position()
        self._write(pack_prefix())
        log.info("container_opened", sink=self._describe_sink(), stream_count=len(self._streams))

    def add_chunk(self, data: ChunkData) -> "ContainerWriter":
        """Validate, encode and append one chunk; returns self for chaining."""
        if self._closed:
            raise ContainerClosed("container is closed; no further chunks can be appended")
        try:
            batches = self._validator.validate(data)
            payload = self._encode_chunk(batches)
        except ChunkValidationError as exc:
            log.warning("chunk_rejected", error=type(exc).__name__, message=str(exc))
            raise
        entry = ChunkIndexEntry(
            offset=self.offset,
            sequence_count=batches[0].sequence_count,
            total_sample_count=sum(b.total_samples for b in batches),
        )
        self._write(payload)
        self._chunks.append(entry)
        log.debug(
            "chunk_appended",
            chunk_index=len(self._chunks) - 1,
            offset=entry.offset,
            sequence_count=entry.sequence_count,
            total_sample_count=entry.total_sample_count,
            byte_length=len(payload),
        )
        return self

    def close(self) -> Optional[ContainerSummary]:
        """
        Seals the container.

        1.  Records the current position as the footer offset.
        2.  Writes magic, chunk count and stream count.
        3.  Writes every stream header, then every chunk index entry.
        4.  Writes the footer offset as the final 8 bytes.
        5.  Flushes (and fsyncs when ``durable``) and releases the sink.

        Safe to call more than once; later calls return the first summary.
        Returns None when the writer was aborted.
        """
        if self._closed:
            return self._summary
        self._closed = True
        footer_offset = self.offset
        self._write(build_footer(self._streams, self._chunks, footer_offset))
        try:
            self._sync()
        except BaseException:
            self.abort("sync failed")
            raise
        self._release()
        self._summary = ContainerSummary(
            footer_offset=footer_offset,
            chunk_count=len(self._chunks),
            stream_count=len(self._streams),
            total_bytes=self.offset,
        )
        log.info(
            "container_closed",
            footer_offset=footer_offset,
            chunk_count=len(self._chunks),
            total_bytes=self.offset,
        )
        return self._summary

    def abort(self, reason: str = "aborted"):
        """Release the sink without writing a footer."""
        if self._failed:
            return
        self._closed = True
        self._failed = True
        log.warning("container_aborted", reason=reason, offset=self.offset, chunk_count=len(self._chunks))
        try:
            self._release()
        except OSError as exc:
            log.warning("sink_release_failed", error=str(exc))

    # internals
    def _encode_chunk(self, batches: Sequence[StreamBatch]) -> bytes:
        # u32[sequence_count] max lengths, then each stream in container order
        parts = [pack_max_lengths(max_sequence_lengths(batches))]
        for encoder, batch in zip(self._encoders, batches):
            parts.append(encoder.encode_batch(batch))
        return b"".join(parts)

    def _write(self, data: bytes):
        if self.f is None:
            raise ContainerClosed("container sink has been released")
        try:
            self.f.write(data)
        except BaseException as exc:
            self.abort(f"write failed: {exc!r}")
            raise
        self.offset += len(data)

    def _start_position(self) -> int:
        try:
            return self.f.tell()
        except (AttributeError, OSError):
            return 0

    def _sync(self):
        if self.f is None:
            return
        self.f.flush()
        if not self.durable:
            return
        try:
            fileno = self.f.fileno()
        except (AttributeError, io.UnsupportedOperation):
            return
        os.fsync(fileno)

    def _release(self):
        f, self.f = self.f, None
        if f is None:
            return
        if self._owns_sink or self.close_sink:
            f.close()
        else:
            f.flush()

    def _describe_sink(self) -> str:
        if isinstance(self._sink, (str, os.PathLike)):
            return os.fspath(self._sink)
        return str(getattr(self._sink, "name", type(self._sink).__name__))


def write_container(
    streams: Iterable[StreamDescriptor],
    chunks: Iterable[ChunkData],
    sink: PathOrSink,
    **kwargs,
) -> Optional[ContainerSummary]:
    """Write a complete container from an iterable of chunk mappings."""
    with ContainerWriter(streams, sink, **kwargs) as writer:
        for chunk in chunks:
            writer.add_chunk(chunk)
        return writer.close()
