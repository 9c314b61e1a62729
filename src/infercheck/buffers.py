# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Nested buffers that mirror a tensor's shape and element kind.

A buffer is either a single leaf (``float``, ``int``, ``bool`` or ``str``)
for a scalar tensor, or a list of buffers whose nesting depth equals the
tensor rank. :func:`build_buffer` is the only constructor; everything else
inspects or fills buffers it produced.
"""

import numbers
from typing import Any, List, Tuple

import numpy as np

from .errors import ShapeMismatchError
from .tensor_info import TensorDescriptor, TensorType, normalize_shape

Buffer = Any

_NUMPY_DTYPES = {
    TensorType.FLOAT32: np.float32,
    TensorType.FLOAT16: np.float16,
    TensorType.INT: np.int64,
    TensorType.BOOL: np.bool_,
    TensorType.STRING: object,
}

_LEAF_COERCE = {
    TensorType.FLOAT32: float,
    TensorType.FLOAT16: float,
    TensorType.INT: int,
    TensorType.BOOL: bool,
    TensorType.STRING: str,
}


def build_buffer(shape, tensor_type) -> Buffer:
    """Build a zero-valued buffer congruent with ``shape``.

    Examples:
        build_buffer([1, 512], TensorType.FLOAT32) -> [[0.0] * 512]
        build_buffer([], TensorType.FLOAT32) -> 0.0
        build_buffer([2, 0], TensorType.INT) -> [[], []]
    """
    shape = normalize_shape(shape)
    zero = TensorType.from_dtype(tensor_type).zero

    if not shape:
        return zero

    last = len(shape) - 1

    def build_at(dim):
        if dim == last:
            return [zero] * shape[dim]
        # Siblings must be independent lists, so no list multiplication here
        return [build_at(dim + 1) for _ in range(shape[dim])]

    return build_at(0)


def build_for(descriptor: TensorDescriptor) -> Buffer:
    return build_buffer(descriptor.shape, descriptor.type)


def _as_real(node) -> float:
    if isinstance(node, (bool, np.bool_)) or not isinstance(node, numbers.Real):
        raise TypeError(
            f"Cannot flatten non-numeric leaf of type {type(node).__name__}: {node!r}"
        )
    return float(node)


def flatten(buffer: Buffer) -> List[float]:
    """Flatten a nested numeric buffer depth-first, left to right.

    Depth is discovered by inspection, so any nesting of lists, tuples and
    numpy arrays is accepted.

    Raises:
        TypeError: If a leaf is not a real number (bool and str included).
    """
    result: List[float] = []
    stack = [iter((buffer,))]
    while stack:
        try:
            node = next(stack[-1])
        except StopIteration:
            stack.pop()
            continue

        if isinstance(node, (list, tuple)):
            stack.append(iter(node))
        elif isinstance(node, np.ndarray):
            if node.dtype.kind in "bUS":
                raise TypeError(f"Cannot flatten array of dtype {node.dtype}")
            if node.dtype.kind == "O":
                stack.append(iter(node.ravel().tolist()))
            else:
                result.extend(node.astype(np.float64).ravel().tolist())
        else:
            result.append(_as_real(node))
    return result


def buffer_shape(buffer: Buffer) -> Tuple[int, ...]:
    """Extents of a buffer, read along its first elements."""
    dims = []
    node = buffer
    while isinstance(node, (list, tuple)):
        dims.append(len(node))
        if not node:
            break
        node = node[0]
    return tuple(dims)


def _leaf_matches(node, tensor_type: TensorType) -> bool:
    if tensor_type is TensorType.BOOL:
        return isinstance(node, bool)
    if isinstance(node, bool):
        return False
    if tensor_type is TensorType.STRING:
        return isinstance(node, str)
    if tensor_type is TensorType.INT:
        return isinstance(node, int)
    return isinstance(node, float)


def check_congruent(buffer: Buffer, descriptor: TensorDescriptor) -> None:
    """Raise ShapeMismatchError unless ``buffer`` matches ``descriptor`` exactly."""
    shape = descriptor.shape
    rank = len(shape)

    def visit(node, dim, path):
        where = f"{descriptor.name}{path}"
        if dim == rank:
            if isinstance(node, (list, tuple)) or not _leaf_matches(
                node, descriptor.type
            ):
                raise ShapeMismatchError(
                    f"Tensor {where}: expected a {descriptor.type.value} leaf, "
                    f"got {type(node).__name__}"
                )
            return
        if not isinstance(node, (list, tuple)):
            raise ShapeMismatchError(
                f"Tensor {where}: expected a sequence of length {shape[dim]} "
                f"at depth {dim}, got {type(node).__name__}"
            )
        if len(node) != shape[dim]:
            raise ShapeMismatchError(
                f"Tensor {where}: expected length {shape[dim]} at depth {dim}, "
                f"got {len(node)} (shape {list(shape)})"
            )
        for i, child in enumerate(node):
            visit(child, dim + 1, f"{path}[{i}]")

    visit(buffer, 0, "")


def fill_from_array(
    buffer: Buffer, array: np.ndarray, descriptor: TensorDescriptor
) -> Buffer:
    """Copy ``array`` into ``buffer`` and return the filled buffer.

    Lists are written in place, so the returned object is ``buffer`` itself
    unless the tensor is a scalar, where the new leaf is returned.
    """
    array = np.asarray(array)
    if array.shape != descriptor.shape:
        raise ShapeMismatchError(
            f"Tensor {descriptor.name}: expected shape {list(descriptor.shape)}, "
            f"got {list(array.shape)}"
        )
    coerce = _LEAF_COERCE[descriptor.type]
    if array.dtype.kind not in "biuUSO":
        # tolist() cannot convert ml_dtypes floats to Python scalars directly
        array = array.astype(np.float64)
    values = array.tolist()

    if array.ndim == 0:
        return coerce(values)

    last = array.ndim - 1

    def copy(dst, src, dim):
        if dim == last:
            dst[:] = [coerce(v) for v in src]
            return
        for d, s in zip(dst, src):
            copy(d, s, dim + 1)

    copy(buffer, values, 0)
    return buffer


def to_array(buffer: Buffer, descriptor: TensorDescriptor) -> np.ndarray:
    """Convert a buffer built for ``descriptor`` to a numpy array."""
    array = np.asarray(buffer, dtype=_NUMPY_DTYPES[descriptor.type])
    # Zero extents collapse inner dimensions, reshape restores them
    return array.reshape(descriptor.shape)
