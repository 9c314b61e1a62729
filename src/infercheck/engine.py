# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Capability contract of an inference engine.

The session only talks to an engine through these two classes. A concrete
backend allocates a :class:`Handle` per loaded model instance; the handle
reports tensor metadata and executes batches against caller-owned buffers.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, MutableMapping

from .buffers import Buffer
from .tensor_info import TensorDescriptor


class ResetStatus(Enum):
    OK = "ok"
    UNSUPPORTED = "unsupported"


class Handle(ABC):
    """One loaded, allocated model instance."""

    @abstractmethod
    def allocate_tensors(self) -> None:
        """Allocate input and output tensors. Raises EngineError on failure."""

    @abstractmethod
    def input_count(self) -> int:
        """Number of input tensors"""

    @abstractmethod
    def output_count(self) -> int:
        """Number of output tensors"""

    @abstractmethod
    def describe_input(self, index: int) -> TensorDescriptor:
        """Metadata of input tensor ``index``"""

    @abstractmethod
    def describe_output(self, index: int) -> TensorDescriptor:
        """Metadata of output tensor ``index``"""

    @abstractmethod
    def run(
        self, inputs: Dict[int, Buffer], outputs: MutableMapping[int, Buffer]
    ) -> None:
        """Execute one batch.

        Output buffers are filled in place; scalar outputs, whose leaves
        cannot be mutated, are replaced in the ``outputs`` mapping.
        """

    @abstractmethod
    def reset_state(self) -> ResetStatus:
        """Reset variable tensors, or report that this backend cannot."""

    @abstractmethod
    def close(self) -> None:
        """Release the handle. Calling it again is a no-op."""


class Engine(ABC):
    @abstractmethod
    def allocate(self, model_ref: Any) -> Handle:
        """Load ``model_ref`` and return a new handle. Raises EngineError."""
