# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import math

import ml_dtypes
import numpy as np
import pytest

from infercheck.buffers import (
    buffer_shape,
    build_buffer,
    build_for,
    check_congruent,
    fill_from_array,
    flatten,
    to_array,
)
from infercheck.errors import ShapeMismatchError
from infercheck.hashing import content_hash
from infercheck.tensor_info import TensorDescriptor, TensorType

SHAPES = [(), (1,), (3,), (1, 512), (2, 3, 4), (1, 3, 4, 4), (2, 1, 1, 1, 2)]


@pytest.mark.parametrize("shape", SHAPES)
@pytest.mark.parametrize(
    "tensor_type", [TensorType.FLOAT32, TensorType.FLOAT16, TensorType.INT]
)
def test_flatten_of_built_buffer_is_all_zeros(shape, tensor_type):
    flat = flatten(build_buffer(shape, tensor_type))
    assert len(flat) == math.prod(shape)
    assert all(v == 0.0 for v in flat)


@pytest.mark.parametrize("shape", SHAPES)
@pytest.mark.parametrize("tensor_type", list(TensorType))
def test_built_buffer_is_congruent(shape, tensor_type):
    buffer = build_buffer(shape, tensor_type)
    descriptor = TensorDescriptor(0, "t", shape, tensor_type)
    check_congruent(buffer, descriptor)
    if shape:
        assert buffer_shape(buffer) == shape


@pytest.mark.parametrize(
    "tensor_type, zero",
    [
        (TensorType.FLOAT32, 0.0),
        (TensorType.FLOAT16, 0.0),
        (TensorType.INT, 0),
        (TensorType.BOOL, False),
        (TensorType.STRING, ""),
    ],
)
def test_scalar_shape_returns_zero_leaf(tensor_type, zero):
    leaf = build_buffer([], tensor_type)
    assert leaf == zero
    assert type(leaf) is type(zero)


def test_leaf_kind_is_homogeneous():
    buffer = build_buffer([2, 3], TensorType.INT)
    assert all(type(v) is int for row in buffer for v in row)
    buffer = build_buffer([2, 3], TensorType.BOOL)
    assert all(v is False for row in buffer for v in row)


def test_sibling_sub_buffers_are_independent():
    buffer = build_buffer([2, 2], TensorType.FLOAT32)
    buffer[0][0] = 5.0
    assert buffer[1][0] == 0.0


@pytest.mark.parametrize("shape", [(0,), (2, 0), (0, 3), (1, 0, 4)])
def test_zero_extent_builds_and_flattens_empty(shape):
    buffer = build_buffer(shape, TensorType.FLOAT32)
    assert flatten(buffer) == []
    check_congruent(buffer, TensorDescriptor(0, "empty", shape, TensorType.FLOAT32))


def test_zero_extent_outer_level():
    assert build_buffer([2, 0], TensorType.FLOAT32) == [[], []]
    assert build_buffer([0, 3], TensorType.FLOAT32) == []


def test_fractional_extent_is_rejected():
    with pytest.raises(ValueError, match="must be integers"):
        build_buffer([2.7, 2], TensorType.FLOAT32)


def test_build_for_descriptor():
    d = TensorDescriptor(1, "image_embeds", (1, 4), TensorType.FLOAT32)
    assert build_for(d) == [[0.0, 0.0, 0.0, 0.0]]


def test_flatten_is_depth_first_left_to_right():
    assert flatten([[1, 2], [3, [4, 5]], 6]) == [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]


def test_flatten_scalar_leaf():
    assert flatten(2.5) == [2.5]


def test_flatten_is_deterministic():
    buffer = [[0.25, -1.5], [3.0, 7.125]]
    assert flatten(buffer) == flatten(buffer)


def test_flatten_handles_deep_nesting():
    buffer = 1.0
    for _ in range(3000):
        buffer = [buffer]
    assert flatten(buffer) == [1.0]


def test_flatten_accepts_numpy_arrays():
    array = np.arange(6, dtype=np.float32).reshape(2, 3)
    assert flatten(array) == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]
    assert flatten([array[0], [np.float32(9)]]) == [0.0, 1.0, 2.0, 9.0]


@pytest.mark.parametrize("bad", [True, [1.0, False], ["a"], [[1.0], ["x"]]])
def test_flatten_rejects_non_numeric_leaves(bad):
    with pytest.raises(TypeError):
        flatten(bad)


def test_flatten_rejects_bool_array():
    with pytest.raises(TypeError):
        flatten(np.zeros(3, dtype=bool))


def test_check_congruent_wrong_length():
    d = TensorDescriptor(0, "image_embeds", (1, 4), TensorType.FLOAT32)
    with pytest.raises(ShapeMismatchError, match=r"expected length 4 at depth 1"):
        check_congruent([[0.0, 0.0, 0.0]], d)


def test_check_congruent_wrong_depth():
    d = TensorDescriptor(0, "x", (2, 2), TensorType.FLOAT32)
    with pytest.raises(ShapeMismatchError, match="expected a sequence"):
        check_congruent([0.0, 0.0], d)
    with pytest.raises(ShapeMismatchError, match="leaf"):
        check_congruent([[[0.0], [0.0]], [[0.0], [0.0]]], d)


def test_check_congruent_wrong_leaf_kind():
    d = TensorDescriptor(0, "ids", (2,), TensorType.INT)
    with pytest.raises(ShapeMismatchError, match=r"ids\[1\]"):
        check_congruent([0, 0.0], d)
    with pytest.raises(ShapeMismatchError):
        check_congruent([0, True], d)


def test_fill_from_array_writes_in_place():
    d = TensorDescriptor(0, "x", (2, 3), TensorType.FLOAT32)
    buffer = build_for(d)
    inner = buffer[1]
    values = np.arange(6, dtype=np.float32).reshape(2, 3)

    filled = fill_from_array(buffer, values, d)

    assert filled is buffer
    assert buffer[1] is inner
    assert buffer == [[0.0, 1.0, 2.0], [3.0, 4.0, 5.0]]
    check_congruent(buffer, d)


def test_fill_from_array_scalar_returns_new_leaf():
    d = TensorDescriptor(0, "scale", (), TensorType.FLOAT32)
    assert fill_from_array(0.0, np.float32(100.0), d) == 100.0


def test_fill_from_array_converts_bfloat16():
    d = TensorDescriptor(0, "x", (2,), "bfloat16")
    values = np.array([1.5, -2.0], dtype=np.float32).astype(ml_dtypes.bfloat16)
    buffer = fill_from_array(build_for(d), values, d)
    assert buffer == [1.5, -2.0]
    check_congruent(buffer, d)


def test_fill_from_array_shape_mismatch():
    d = TensorDescriptor(0, "x", (1, 4), TensorType.FLOAT32)
    with pytest.raises(ShapeMismatchError, match=r"expected shape \[1, 4\]"):
        fill_from_array(build_for(d), np.zeros((1, 5)), d)


def test_to_array_restores_zero_extents():
    d = TensorDescriptor(0, "x", (0, 5), TensorType.FLOAT32)
    array = to_array(build_for(d), d)
    assert array.shape == (0, 5)
    assert array.dtype == np.float32


def test_end_to_end_embedding_buffer():
    d = TensorDescriptor(1, "image_embeds", (1, 512), TensorType.FLOAT32)
    buffer = build_for(d)
    assert len(buffer) == 1 and len(buffer[0]) == 512
    assert flatten(buffer) == [0.0] * 512

    fill_a = fill_from_array(build_for(d), np.linspace(0.1, 1.0, 512)[None], d)
    fill_b = fill_from_array(build_for(d), np.linspace(-1.0, -0.1, 512)[None], d)
    assert content_hash(flatten(fill_a)) != content_hash(flatten(fill_b))
    assert content_hash(flatten(fill_a)) == content_hash(flatten(fill_a))
