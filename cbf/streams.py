from __future__ import annotations

import enum
import operator
from dataclasses import dataclass
from typing import Any, Dict, Union

import numpy as np

from .constants import DTYPE_FLOAT32, DTYPE_FLOAT64, U32_MAX
from .errors import InvalidStreamDescriptor, UnsupportedDataType


class DataType(enum.IntEnum):
    FLOAT32 = DTYPE_FLOAT32
    FLOAT64 = DTYPE_FLOAT64


@dataclass(frozen=True)
class NumericKind:
    """Fixed-width little-endian encoding and zero test for one data type."""

    data_type: DataType
    dtype: np.dtype
    zero: Any

    @property
    def itemsize(self) -> int:
        return self.dtype.itemsize

    def coerce(self, values) -> np.ndarray:
        """Convert a real-valued array-like to a flat array of this kind (C order).

        Raises TypeError for non-numeric input (strings, objects, complex) and
        ValueError for finite values that overflow to infinity in this kind.
        """
        raw = np.asarray(values)
        if raw.dtype.kind not in "biuf":
            raise TypeError(f"expected real numbers, got array of dtype {raw.dtype}")
        with np.errstate(over="ignore"):
            out = raw.astype(self.dtype, copy=False).reshape(-1)
        if raw.dtype.kind == "f" and raw.dtype.itemsize > self.itemsize:
            if np.any(np.isinf(out) & np.isfinite(raw.reshape(-1))):
                raise ValueError(f"value out of range for {self.data_type.name.lower()}")
        return out

    def pack(self, values: np.ndarray) -> bytes:
        return np.ascontiguousarray(values, dtype=self.dtype).tobytes()

    def non_zero_mask(self, values: np.ndarray) -> np.ndarray:
        # exact comparison: -0.0 is zero, NaN is not
        return values != self.zero


FLOAT32 = NumericKind(DataType.FLOAT32, np.dtype("<f4"), np.float32(0.0))
FLOAT64 = NumericKind(DataType.FLOAT64, np.dtype("<f8"), np.float64(0.0))

_KINDS: Dict[DataType, NumericKind] = {
    DataType.FLOAT32: FLOAT32,
    DataType.FLOAT64: FLOAT64,
}


def resolve_data_type(data_type: Union[DataType, int]) -> DataType:
    if isinstance(data_type, DataType):
        return data_type
    if isinstance(data_type, bool):
        raise UnsupportedDataType(data_type)
    try:
        return DataType(operator.index(data_type))
    except (TypeError, ValueError):
        raise UnsupportedDataType(data_type) from None


@dataclass(frozen=True)
class StreamDescriptor:
    """Identity and encoding parameters of one logical stream.

    ``data_type`` is the on-disk tag (0=float32, 1=float64), ``dimension`` the
    number of scalar values per sample, and ``sparse`` selects the sparse
    encoding for every chunk of the container.
    """

    name: str
    data_type: DataType
    dimension: int
    sparse: bool = False

    def __post_init__(self):
        object.__setattr__(self, "data_type", resolve_data_type(self.data_type))
        if not isinstance(self.name, str):
            raise InvalidStreamDescriptor(f"stream name must be str, got {type(self.name).__name__}")
        if not self.name.isascii():
            raise InvalidStreamDescriptor(f"stream name must be ASCII: {self.name!r}")
        if len(self.name) > U32_MAX:
            raise InvalidStreamDescriptor("stream name is too long")
        if isinstance(self.dimension, bool):
            raise InvalidStreamDescriptor(f"dimension must be an integer, got {self.dimension!r}")
        try:
            dimension = operator.index(self.dimension)
        except TypeError:
            raise InvalidStreamDescriptor(f"dimension must be an integer, got {self.dimension!r}") from None
        if not 0 < dimension <= U32_MAX:
            raise InvalidStreamDescriptor(f"dimension must be in 1..{U32_MAX}, got {dimension}")
        object.__setattr__(self, "dimension", dimension)
        object.__setattr__(self, "sparse", bool(self.sparse))

    @classmethod
    def create(
        cls,
        name: str,
        data_type: Union[DataType, int],
        dimension: int,
        sparse: bool = False,
    ) -> "StreamDescriptor":
        return cls(name=name, data_type=data_type, dimension=dimension, sparse=sparse)

    @property
    def kind(self) -> NumericKind:
        return _KINDS[self.data_type]

    @property
    def name_bytes(self) -> bytes:
        return self.name.encode("ascii")
