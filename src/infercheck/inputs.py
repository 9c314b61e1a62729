# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Seeded synthetic inputs"""

import numpy as np

from .buffers import Buffer
from .tensor_info import TensorDescriptor, TensorType


def generate_array(seed: int, descriptor: TensorDescriptor) -> np.ndarray:
    """Deterministic random array for ``descriptor``.

    Floats are uniform in [-1, 1), ints uniform in [0, 256), bools fair coin.
    """
    rng = np.random.default_rng(seed)
    shape = descriptor.shape
    if descriptor.type in (TensorType.FLOAT32, TensorType.FLOAT16):
        return (rng.random(shape) - 0.5) * 2.0
    if descriptor.type is TensorType.INT:
        return rng.integers(0, 256, size=shape)
    if descriptor.type is TensorType.BOOL:
        return rng.random(shape) < 0.5
    raise ValueError(
        f"Cannot generate synthetic input for {descriptor.type.value} "
        f"tensor {descriptor.name}"
    )


def generate_input(seed: int, descriptor: TensorDescriptor) -> Buffer:
    """Synthetic input buffer for ``descriptor``, congruent with its shape."""
    return np.asarray(generate_array(seed, descriptor)).tolist()
