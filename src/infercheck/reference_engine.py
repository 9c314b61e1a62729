# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""NumPy reference engine.

Stands in for a native runtime: a small image/text embedding model with an
optional variable tensor that carries state from one run to the next, the
way a stateful model does on an accelerator backend.
"""

from dataclasses import dataclass
from typing import Dict, List, MutableMapping, Optional, Tuple

import numpy as np

from .buffers import Buffer, check_congruent, fill_from_array, to_array
from .engine import Engine, Handle, ResetStatus
from .errors import EngineError, ShapeMismatchError
from .logger import get_logger
from .tensor_info import TensorDescriptor, TensorType, resolve_dtype

logger = get_logger()

INPUT_NAME = "pixel_values"
OUTPUT_NAMES = ("logit_scale", "text_embeds", "image_embeds")


@dataclass(frozen=True)
class ReferenceModel:
    """Configuration of the reference model"""

    input_shape: Tuple[int, ...] = (1, 3, 32, 32)
    embedding_dim: int = 512
    dtype: str = "float32"
    # Keep a variable tensor that accumulates across runs until reset
    stateful: bool = True
    # Backends that cannot reset in place report UNSUPPORTED
    supports_reset: bool = True
    weights_seed: int = 0
    logit_scale: float = 100.0

    def __post_init__(self):
        if len(self.input_shape) < 2:
            raise ValueError(
                "input_shape needs a batch and a feature dimension, "
                f"got {self.input_shape}"
            )
        if self.embedding_dim < 2:
            raise ValueError(f"embedding_dim must be > 1, got {self.embedding_dim}")
        if TensorType.from_dtype(self.dtype) not in (
            TensorType.FLOAT32,
            TensorType.FLOAT16,
        ):
            raise ValueError(f"Reference model needs a float dtype, got {self.dtype}")


def _normalize(x: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(x, axis=-1, keepdims=True)
    return x / np.maximum(norm, 1e-12)


class ReferenceHandle(Handle):
    def __init__(self, model: ReferenceModel, handle_id: int):
        self.model = model
        self.handle_id = handle_id
        self.closed = False
        self.run_count = 0
        self._allocated = False

        batch = model.input_shape[0]
        features = int(np.prod(model.input_shape[1:]))
        rng = np.random.default_rng(model.weights_seed)
        self._image_proj = (
            rng.standard_normal((features, model.embedding_dim)) / np.sqrt(features)
        ).astype(np.float32)
        self._text_embeds = _normalize(
            rng.standard_normal((batch, model.embedding_dim))
        ).astype(np.float32)
        self._state = np.zeros((batch, model.embedding_dim), dtype=np.float32)

        self._inputs = [
            TensorDescriptor(0, INPUT_NAME, model.input_shape, model.dtype, model.dtype)
        ]
        embed_shape = (batch, model.embedding_dim)
        self._outputs = [
            TensorDescriptor(0, OUTPUT_NAMES[0], (), model.dtype, model.dtype),
            TensorDescriptor(1, OUTPUT_NAMES[1], embed_shape, model.dtype, model.dtype),
            TensorDescriptor(2, OUTPUT_NAMES[2], embed_shape, model.dtype, model.dtype),
        ]

    def __repr__(self) -> str:
        return f"ReferenceHandle(id={self.handle_id}, closed={self.closed})"

    def _check_usable(self, allocated=True):
        if self.closed:
            raise EngineError(f"Handle {self.handle_id} is closed")
        if allocated and not self._allocated:
            raise EngineError(f"Handle {self.handle_id}: tensors are not allocated")

    def allocate_tensors(self) -> None:
        self._check_usable(allocated=False)
        self._allocated = True

    def input_count(self) -> int:
        self._check_usable()
        return len(self._inputs)

    def output_count(self) -> int:
        self._check_usable()
        return len(self._outputs)

    def describe_input(self, index: int) -> TensorDescriptor:
        self._check_usable()
        try:
            return self._inputs[index]
        except IndexError:
            raise EngineError(f"No input tensor at index {index}") from None

    def describe_output(self, index: int) -> TensorDescriptor:
        self._check_usable()
        try:
            return self._outputs[index]
        except IndexError:
            raise EngineError(f"No output tensor at index {index}") from None

    def _forward(self, pixels: np.ndarray) -> List[np.ndarray]:
        batch = pixels.shape[0]
        features = pixels.reshape(batch, -1).astype(np.float32)
        hidden = np.tanh(features @ self._image_proj + self._state)
        if self.model.stateful:
            self._state += np.float32(0.5) * hidden
        # Results carry the exact dtype the descriptors report, bfloat16 included
        dtype = resolve_dtype(self.model.dtype)
        return [
            np.asarray(self.model.logit_scale, dtype=dtype),
            self._text_embeds.astype(dtype),
            _normalize(hidden).astype(dtype),
        ]

    def run(
        self, inputs: Dict[int, Buffer], outputs: MutableMapping[int, Buffer]
    ) -> None:
        self._check_usable()
        if set(inputs) != {0}:
            raise EngineError(f"Expected exactly input 0, got {sorted(inputs)}")
        for index in outputs:
            if not 0 <= index < len(self._outputs):
                raise EngineError(f"No output tensor at index {index}")

        descriptor = self._inputs[0]
        try:
            check_congruent(inputs[0], descriptor)
        except ShapeMismatchError as e:
            raise EngineError(f"Rejected input buffer: {e}") from e

        results = self._forward(to_array(inputs[0], descriptor))
        for index in list(outputs):
            outputs[index] = fill_from_array(
                outputs[index], results[index], self._outputs[index]
            )
        self.run_count += 1

    def reset_state(self) -> ResetStatus:
        self._check_usable()
        if not self.model.supports_reset:
            return ResetStatus.UNSUPPORTED
        self._state.fill(0)
        return ResetStatus.OK

    def close(self) -> None:
        if not self.closed:
            logger.debug(f"Closing reference handle {self.handle_id}")
        self.closed = True


class NumpyEngine(Engine):
    """Allocates :class:`ReferenceHandle` instances for a ReferenceModel."""

    def __init__(self):
        self.handles: List[ReferenceHandle] = []

    @property
    def allocations(self) -> int:
        return len(self.handles)

    @property
    def live_handles(self) -> List[ReferenceHandle]:
        return [h for h in self.handles if not h.closed]

    def allocate(self, model_ref: Optional[ReferenceModel]) -> ReferenceHandle:
        if not isinstance(model_ref, ReferenceModel):
            raise EngineError(
                f"NumpyEngine cannot load model reference of type "
                f"{type(model_ref).__name__}"
            )
        handle = ReferenceHandle(model_ref, handle_id=len(self.handles))
        self.handles.append(handle)
        logger.debug(f"Allocated {handle}")
        return handle
