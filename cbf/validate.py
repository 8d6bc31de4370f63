from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Sequence, Union

import numpy as np

from .constants import U32_MAX
from .encoder import StreamBatch, sequence_lengths
from .errors import (
    FieldOverflow,
    InconsistentSequenceCount,
    InvalidSequenceData,
    InvalidStreamDescriptor,
    StreamMismatch,
)
from .streams import StreamDescriptor


ChunkData = Mapping[Union[StreamDescriptor, str], Iterable]


class ChunkValidator:
    """Rejects an inconsistent chunk before any of its bytes are written.

    ``validate`` returns one StreamBatch per container stream, in container
    order, with every sequence coerced to its stream's dtype. Checks, in order:

    1. The chunk names exactly the container's streams (by descriptor or name).
    2. Every stream supplies the same number of sequences.
    3. Every sequence converts to the stream's numeric type and its length is
       a multiple of the stream dimension.
    4. Sequence and sample counts fit their 32-bit fields.
    """

    def __init__(self, streams: Sequence[StreamDescriptor]):
        self.streams = tuple(streams)
        self._by_name: Dict[str, StreamDescriptor] = {}
        for s in self.streams:
            if s.name in self._by_name:
                raise InvalidStreamDescriptor(f"duplicate stream name: {s.name!r}")
            self._by_name[s.name] = s

    def validate(self, data: ChunkData) -> List[StreamBatch]:
        raw = self._resolve(data)

        counts = {s.name: len(raw[s]) for s in self.streams}
        if len(set(counts.values())) != 1:
            raise InconsistentSequenceCount(counts)
        n_seq = next(iter(counts.values()))
        if n_seq > U32_MAX:
            raise FieldOverflow("sequence count", n_seq)

        batches: List[StreamBatch] = []
        total = 0
        for s in self.streams:
            sequences = tuple(self._coerce(s, i, seq) for i, seq in enumerate(raw[s]))
            sample_counts = sequence_lengths(s, sequences)
            if sample_counts.size and int(sample_counts.max()) > U32_MAX:
                raise FieldOverflow("sample count", int(sample_counts.max()), s.name)
            batch = StreamBatch(stream=s, sequences=sequences, sample_counts=sample_counts)
            total += batch.total_samples
            batches.append(batch)
        if total > U32_MAX:
            raise FieldOverflow("total sample count", total)
        return batches

    def _resolve(self, data: ChunkData) -> Dict[StreamDescriptor, list]:
        resolved: Dict[StreamDescriptor, list] = {}
        for key, sequences in data.items():
            if isinstance(key, StreamDescriptor):
                stream = self._by_name.get(key.name)
                if stream != key:
                    raise StreamMismatch(f"stream {key.name!r} is not declared by this container")
            elif isinstance(key, str):
                stream = self._by_name.get(key)
                if stream is None:
                    raise StreamMismatch(f"stream {key!r} is not declared by this container")
            else:
                raise StreamMismatch(f"chunk keys must be stream descriptors or names, got {type(key).__name__}")
            if stream in resolved:
                raise StreamMismatch(f"stream {stream.name!r} supplied more than once")
            resolved[stream] = list(sequences)
        missing = [s.name for s in self.streams if s not in resolved]
        if missing:
            raise StreamMismatch(f"chunk is missing streams: {', '.join(missing)}")
        return resolved

    @staticmethod
    def _coerce(stream: StreamDescriptor, index: int, seq) -> np.ndarray:
        try:
            return stream.kind.coerce(seq)
        except (TypeError, ValueError, OverflowError) as exc:
            raise InvalidSequenceData(stream.name, index, str(exc)) from exc


def validate_chunk(streams: Sequence[StreamDescriptor], data: ChunkData) -> List[StreamBatch]:
    return ChunkValidator(streams).validate(data)
