# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Tensor metadata reported by an inference engine"""

import math
import operator
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Tuple

import ml_dtypes
import numpy as np

bfloat16 = np.dtype(ml_dtypes.bfloat16)

# Extension float types numpy cannot resolve by name on its own
_ML_DTYPES_BY_NAME = {
    "bfloat16": bfloat16,
    "float8_e4m3": np.dtype(ml_dtypes.float8_e4m3),
    "float8_e4m3fn": np.dtype(ml_dtypes.float8_e4m3fn),
    "float8_e5m2": np.dtype(ml_dtypes.float8_e5m2),
}
_HALF_WIDTH_FLOATS = {np.dtype(np.float16), bfloat16}
_EXTENSION_FLOATS = set(_ML_DTYPES_BY_NAME.values())


def resolve_dtype(dtype) -> np.dtype:
    """``np.dtype`` that also understands ml_dtypes names such as ``"bfloat16"``."""
    if isinstance(dtype, str):
        dtype = _ML_DTYPES_BY_NAME.get(dtype, dtype)
    return np.dtype(dtype)


class TensorType(Enum):
    """Element kind of a tensor, bucketed by the leaf value a buffer holds."""

    FLOAT32 = "float32"
    FLOAT16 = "float16"
    INT = "int"
    BOOL = "bool"
    STRING = "string"

    @property
    def zero(self):
        if self in (TensorType.FLOAT32, TensorType.FLOAT16):
            return 0.0
        if self is TensorType.INT:
            return 0
        if self is TensorType.BOOL:
            return False
        return ""

    @property
    def is_numeric(self) -> bool:
        return self in (TensorType.FLOAT32, TensorType.FLOAT16, TensorType.INT)

    @classmethod
    def from_dtype(cls, dtype) -> "TensorType":
        """Bucket a numpy dtype, dtype name, or ml_dtypes type.

        Args:
            dtype: Anything ``np.dtype`` accepts, an ml_dtypes name such as
                ``"bfloat16"``, ``"string"``, or a TensorType.

        Raises:
            ValueError: If the dtype has no bucket (e.g. complex).
        """
        if isinstance(dtype, TensorType):
            return dtype
        if isinstance(dtype, str):
            if dtype in ("string", "str", "bytes"):
                return cls.STRING

        dt = resolve_dtype(dtype)
        if dt in _HALF_WIDTH_FLOATS:
            return cls.FLOAT16
        if dt in _EXTENSION_FLOATS:
            return cls.FLOAT32
        if dt.kind == "b":
            return cls.BOOL
        if dt.kind == "f":
            return cls.FLOAT16 if dt.itemsize == 2 else cls.FLOAT32
        if dt.kind in ("i", "u"):
            return cls.INT
        if dt.kind in ("U", "S", "O"):
            return cls.STRING
        raise ValueError(f"Unsupported tensor dtype: {dt}")


def normalize_shape(shape: Iterable[int]) -> Tuple[int, ...]:
    """Return ``shape`` as a tuple of non-negative ints.

    Raises:
        ValueError: If an extent is negative or not an integer.
    """
    shape = tuple(shape)
    try:
        dims = tuple(operator.index(d) for d in shape)
    except TypeError:
        raise ValueError(f"Tensor extents must be integers, got {shape}") from None
    for d in dims:
        if d < 0:
            raise ValueError(f"Tensor extents must be non-negative, got {dims}")
    return dims


def shape_size(shape: Iterable[int]) -> int:
    """Number of elements in a tensor of ``shape`` (1 for a scalar)."""
    return math.prod(shape)


@dataclass(frozen=True)
class TensorDescriptor:
    """Static metadata of one input or output slot.

    ``dtype`` keeps the engine's exact dtype name for diagnostics only; two
    descriptors are equal when index, name, shape and type bucket agree.
    """

    index: int
    name: str
    shape: Tuple[int, ...]
    type: TensorType
    dtype: str = field(default="", compare=False)

    def __post_init__(self):
        object.__setattr__(self, "shape", normalize_shape(self.shape))
        object.__setattr__(self, "type", TensorType.from_dtype(self.type))
        if not self.dtype:
            object.__setattr__(self, "dtype", self.type.value)

    @classmethod
    def from_array(cls, index: int, name: str, array: np.ndarray) -> "TensorDescriptor":
        return cls(
            index=index,
            name=name,
            shape=array.shape,
            type=TensorType.from_dtype(array.dtype),
            dtype=str(array.dtype),
        )

    @property
    def rank(self) -> int:
        return len(self.shape)

    @property
    def size(self) -> int:
        return shape_size(self.shape)

    def __repr__(self) -> str:
        return (
            f"TensorDescriptor(index={self.index}, name={self.name!r}, "
            f"shape={list(self.shape)}, type={self.type.value}, dtype={self.dtype})"
        )
