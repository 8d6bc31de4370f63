from __future__ import annotations

from typing import Dict, Optional


class CBFError(Exception):
    """Base class for CBF-specific errors."""


# Stream descriptors
class UnsupportedDataType(CBFError):
    def __init__(self, data_type: object):
        super().__init__(f"unsupported data type: {data_type!r} (expected 0=float32 or 1=float64)")
        self.data_type = data_type


class InvalidStreamDescriptor(CBFError):
    pass


# Chunk rejection: nothing is written, the writer stays usable
class ChunkValidationError(CBFError):
    pass


class InconsistentSequenceCount(ChunkValidationError):
    def __init__(self, counts: Dict[str, int]):
        detail = ", ".join(f"{name}={n}" for name, n in counts.items())
        super().__init__(f"sequence count must be equal for all streams in a chunk ({detail})")
        self.counts = dict(counts)


class MisalignedSequence(ChunkValidationError):
    def __init__(self, stream_name: str, sequence_index: int, length: int, dimension: int):
        super().__init__(
            f"stream {stream_name!r} sequence {sequence_index}: length {length} "
            f"is not a multiple of dimension {dimension}"
        )
        self.stream_name = stream_name
        self.sequence_index = sequence_index
        self.length = length
        self.dimension = dimension


class StreamMismatch(ChunkValidationError):
    pass


class InvalidSequenceData(ChunkValidationError):
    def __init__(self, stream_name: str, sequence_index: int, reason: str):
        super().__init__(f"stream {stream_name!r} sequence {sequence_index}: {reason}")
        self.stream_name = stream_name
        self.sequence_index = sequence_index


class FieldOverflow(ChunkValidationError):
    def __init__(self, field: str, value: int, stream_name: Optional[str] = None):
        where = f" in stream {stream_name!r}" if stream_name is not None else ""
        super().__init__(f"{field}{where} is {value}, which does not fit in 32 bits")
        self.field = field
        self.value = value
        self.stream_name = stream_name


# Lifecycle
class ContainerClosed(CBFError):
    pass
