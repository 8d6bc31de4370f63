from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from .constants import SPARSE_SEQ_HDR_STRUCT, U32_MAX, U32_STRUCT
from .errors import FieldOverflow, MisalignedSequence
from .streams import NumericKind, StreamDescriptor


# Sparse index and per-sample count arrays are signed 32-bit on disk
_I32 = np.dtype("<i4")
_U32 = np.dtype("<u4")


@dataclass(frozen=True)
class StreamBatch:
    """One stream's sequences for one chunk, already coerced to the stream's dtype."""

    stream: StreamDescriptor
    sequences: Tuple[np.ndarray, ...]
    sample_counts: np.ndarray

    @property
    def sequence_count(self) -> int:
        return len(self.sequences)

    @property
    def total_samples(self) -> int:
        return int(self.sample_counts.sum())


def count_of_sequences(sequences: Sequence) -> int:
    return len(sequences)


def sequence_lengths(stream: StreamDescriptor, sequences: Iterable) -> np.ndarray:
    """Return the sample count of every sequence (raw length / dimension).

    Raises MisalignedSequence for the first sequence whose raw length is not a
    multiple of the stream dimension.
    """
    kind = stream.kind
    lengths: List[int] = []
    for i, seq in enumerate(sequences):
        size = kind.coerce(seq).size
        if size % stream.dimension:
            raise MisalignedSequence(stream.name, i, size, stream.dimension)
        lengths.append(size // stream.dimension)
    return np.asarray(lengths, dtype=np.int64)


def count_of_samples(stream: StreamDescriptor, sequences: Iterable) -> int:
    return int(sequence_lengths(stream, sequences).sum())


def max_sequence_lengths(batches: Sequence[StreamBatch]) -> np.ndarray:
    """Per sequence slot, the largest sample count across all streams."""
    if not batches:
        raise ValueError("at least one stream batch is required")
    return np.maximum.reduce(np.stack([b.sample_counts for b in batches]), axis=0)


def sparse_sequence(
    kind: NumericKind, values: np.ndarray, dimension: int
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Split a flat sequence into samples of ``dimension`` values and drop zeros.

    Returns (non_zero_values, offsets_within_sample, non_zero_per_sample). An
    all-zero sample contributes only a 0 to ``non_zero_per_sample``.
    """
    samples = kind.coerce(values).reshape(-1, dimension)
    mask = kind.non_zero_mask(samples)
    non_zero = samples[mask]
    offsets = np.nonzero(mask)[1].astype(_I32)
    per_sample = mask.sum(axis=1).astype(_I32)
    return non_zero, offsets, per_sample


class SequenceEncoder:
    """Encodes one stream's sequences for one chunk into its on-disk bytes.

    The dense/sparse choice and the numeric kind are fixed when the encoder is
    built, so encoding a chunk never re-inspects the stream's type tag.
    """

    def __init__(self, stream: StreamDescriptor):
        self.stream = stream
        self.kind = stream.kind
        self.dimension = stream.dimension
        self._encode_one = self._encode_sparse if stream.sparse else self._encode_dense

    def encode(self, sequences: Iterable) -> bytes:
        out = bytearray()
        for i, seq in enumerate(sequences):
            out += self._encode_one(self.kind.coerce(seq), i)
        return bytes(out)

    def encode_batch(self, batch: StreamBatch) -> bytes:
        if batch.stream != self.stream:
            raise ValueError(f"batch for stream {batch.stream.name!r} given to encoder of {self.stream.name!r}")
        return self.encode(batch.sequences)

    def _sample_count(self, values: np.ndarray, index: int) -> int:
        if values.size % self.dimension:
            raise MisalignedSequence(self.stream.name, index, values.size, self.dimension)
        n = values.size // self.dimension
        if n > U32_MAX:
            raise FieldOverflow("sample count", n, self.stream.name)
        return n

    def _encode_dense(self, values: np.ndarray, index: int) -> bytes:
        # u32 sample_count, then every raw value
        n = self._sample_count(values, index)
        return U32_STRUCT.pack(n) + self.kind.pack(values)

    def _encode_sparse(self, values: np.ndarray, index: int) -> bytes:
        # u32 sample_count, u32 nnz, values[nnz], i32 offsets[nnz], i32 per_sample[sample_count]
        n = self._sample_count(values, index)
        non_zero, offsets, per_sample = sparse_sequence(self.kind, values, self.dimension)
        nnz = int(non_zero.size)
        if nnz > U32_MAX:
            raise FieldOverflow("non-zero value count", nnz, self.stream.name)
        return b"".join(
            (
                SPARSE_SEQ_HDR_STRUCT.pack(n, nnz),
                self.kind.pack(non_zero),
                offsets.tobytes(),
                per_sample.tobytes(),
            )
        )


def encode_dense(stream: StreamDescriptor, sequences: Iterable) -> bytes:
    return SequenceEncoder(replace(stream, sparse=False)).encode(sequences)


def encode_sparse(stream: StreamDescriptor, sequences: Iterable) -> bytes:
    return SequenceEncoder(replace(stream, sparse=True)).encode(sequences)


def encode_stream(stream: StreamDescriptor, sequences: Iterable) -> bytes:
    return SequenceEncoder(stream).encode(sequences)


def pack_max_lengths(max_lengths: np.ndarray) -> bytes:
    if max_lengths.size and int(max_lengths.max()) > U32_MAX:
        raise FieldOverflow("max sample length", int(max_lengths.max()))
    return np.asarray(max_lengths, dtype=_U32).tobytes()
