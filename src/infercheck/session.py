# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Lifecycle of the single inference handle.

A :class:`Session` moves through three states::

    Uninitialized --ensure_ready--> Ready --dispose--> Closed
                                    Ready --attempt_reset--> Ready

Every operation other than ``ensure_ready`` and ``dispose`` requires
``Ready``; the check happens once in ``_require_ready``. ``Closed`` is
terminal and ``dispose`` is idempotent.

Thread Safety:
    Transitions and runs are serialized by a re-entrant lock, so a reader
    never observes a half-initialized or already-released handle.
"""

import threading
from dataclasses import dataclass
from typing import Any, Dict, MutableMapping, Optional, Tuple

from .buffers import Buffer, build_for, check_congruent
from .engine import Engine, Handle, ResetStatus
from .errors import (
    ConfigurationError,
    ConsistencyError,
    EngineError,
    ShapeMismatchError,
    UnsupportedOperation,
    UseAfterClose,
)
from .logger import get_logger
from .tensor_info import TensorDescriptor

logger = get_logger()


@dataclass(frozen=True)
class Uninitialized:
    """No handle is held. ``error`` is the last failed attempt, if any."""

    error: Optional[BaseException] = None


@dataclass(frozen=True)
class Ready:
    handle: Handle
    input_descriptors: Tuple[TensorDescriptor, ...]
    output_descriptors: Tuple[TensorDescriptor, ...]
    generation: int

    @property
    def input_descriptor(self) -> TensorDescriptor:
        return self.input_descriptors[0]


@dataclass(frozen=True)
class Closed:
    pass


def _close_quietly(handle: Handle) -> None:
    try:
        handle.close()
    except Exception:
        logger.warning(f"Error closing handle {handle!r}", exc_info=True)


class Session:
    """Owns the engine handle for one model reference."""

    def __init__(self, engine: Engine, model_ref: Any, name: Optional[str] = None):
        self.engine = engine
        self.model_ref = model_ref
        self.name = name or type(model_ref).__name__
        self._lock = threading.RLock()
        self._state = Uninitialized()
        self._generation = 0

    def __repr__(self) -> str:
        return f"Session(name={self.name!r}, state={type(self._state).__name__})"

    def __enter__(self):
        self.ensure_ready()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()

    def __del__(self):
        # May run on a partially constructed object
        if hasattr(self, "_lock"):
            self.dispose()

    @property
    def state(self):
        return self._state

    @property
    def is_ready(self) -> bool:
        return isinstance(self._state, Ready)

    @property
    def is_closed(self) -> bool:
        return isinstance(self._state, Closed)

    @property
    def generation(self) -> int:
        """Number of handles this session has allocated."""
        return self._generation

    def _require_ready(self, operation: str) -> Ready:
        state = self._state
        if isinstance(state, Ready):
            return state
        if isinstance(state, Closed):
            raise UseAfterClose(f"Cannot {operation}: session {self.name} is closed")
        raise ConfigurationError(
            f"Cannot {operation}: session {self.name} is not ready, "
            "call ensure_ready() first"
        )

    def _open_handle(self):
        """Allocate a handle and query its descriptors.

        Returns:
            Tuple of (handle, input_descriptors, output_descriptors)

        Raises:
            ConfigurationError: If any engine call fails. A partially
                prepared handle is closed before raising.
        """
        handle = None
        try:
            handle = self.engine.allocate(self.model_ref)
            handle.allocate_tensors()
            inputs = tuple(
                handle.describe_input(i) for i in range(handle.input_count())
            )
            outputs = tuple(
                handle.describe_output(i) for i in range(handle.output_count())
            )
        except EngineError as e:
            if handle is not None:
                _close_quietly(handle)
            raise ConfigurationError(f"Failed to prepare {self.name}: {e}") from e

        if not inputs:
            _close_quietly(handle)
            raise ConfigurationError(f"Model {self.name} has no input tensors")
        return handle, inputs, outputs

    def ensure_ready(self) -> Ready:
        """Allocate the handle once and cache its descriptors.

        Raises:
            ConfigurationError: If allocation fails. The session stays
                uninitialized and a later call tries again from scratch.
            UseAfterClose: If the session was disposed.
        """
        with self._lock:
            state = self._state
            if isinstance(state, Ready):
                return state
            if isinstance(state, Closed):
                raise UseAfterClose(
                    f"Cannot ensure_ready: session {self.name} is closed"
                )

            logger.info(f"Initializing session {self.name}")
            try:
                handle, inputs, outputs = self._open_handle()
            except ConfigurationError as e:
                self._state = Uninitialized(error=e)
                raise

            self._generation += 1
            self._state = Ready(handle, inputs, outputs, self._generation)
            logger.info(
                f"Session {self.name} ready: input {list(inputs[0].shape)}, "
                f"outputs {[list(d.shape) for d in outputs]}"
            )
            return self._state

    @property
    def input_descriptor(self) -> TensorDescriptor:
        return self._require_ready("read input descriptor").input_descriptor

    @property
    def output_descriptors(self) -> Tuple[TensorDescriptor, ...]:
        return self._require_ready("read output descriptors").output_descriptors

    def allocate_input(self) -> Buffer:
        return build_for(self._require_ready("allocate input").input_descriptor)

    def allocate_outputs(self) -> Dict[int, Buffer]:
        """Fresh zero buffers for every output, keyed by output index."""
        ready = self._require_ready("allocate outputs")
        return {d.index: build_for(d) for d in ready.output_descriptors}

    def _validate_io(self, ready: Ready, input_buffer, outputs):
        check_congruent(input_buffer, ready.input_descriptor)
        count = len(ready.output_descriptors)
        for index, buffer in outputs.items():
            if not 0 <= index < count:
                raise ShapeMismatchError(
                    f"Output index {index} out of range, model has {count} outputs"
                )
            check_congruent(buffer, ready.output_descriptors[index])

    def run(
        self, input_buffer: Buffer, outputs: MutableMapping[int, Buffer]
    ) -> MutableMapping[int, Buffer]:
        """Execute one batch against the live handle.

        Args:
            input_buffer: Buffer congruent with the input descriptor.
            outputs: Output index -> buffer congruent with that output.
                Filled in place and returned.

        Raises:
            ConfigurationError: If called before ensure_ready.
            UseAfterClose: If called after dispose.
            ShapeMismatchError: If a buffer does not match its descriptor.
            EngineError: If execution fails. It is not retried.
        """
        with self._lock:
            ready = self._require_ready("run")
            self._validate_io(ready, input_buffer, outputs)
            ready.handle.run({0: input_buffer}, outputs)
            return outputs

    def attempt_reset(self) -> bool:
        """Reset model state, replacing the handle if the engine cannot.

        Returns:
            True if the handle reset in place, False if it was replaced.

        Raises:
            ConfigurationError: If the replacement handle cannot be prepared.
            ConsistencyError: If the replacement's descriptors differ from
                the originals. No handle is held afterwards in either case.
        """
        with self._lock:
            ready = self._require_ready("reset")
            try:
                status = ready.handle.reset_state()
            except UnsupportedOperation:
                status = ResetStatus.UNSUPPORTED
            if status is ResetStatus.OK:
                logger.debug(f"Session {self.name}: state reset in place")
                return True

            logger.warning(
                f"Session {self.name}: reset_state unsupported by this backend, "
                "falling back to a fresh handle"
            )
            self._state = Uninitialized()
            _close_quietly(ready.handle)
            try:
                handle, inputs, outputs = self._open_handle()
            except ConfigurationError as e:
                self._state = Uninitialized(error=e)
                raise

            if inputs != ready.input_descriptors or outputs != ready.output_descriptors:
                _close_quietly(handle)
                error = ConsistencyError(
                    f"Replacement handle for {self.name} reports different tensors: "
                    f"inputs {list(inputs)} vs {list(ready.input_descriptors)}, "
                    f"outputs {list(outputs)} vs {list(ready.output_descriptors)}"
                )
                self._state = Uninitialized(error=error)
                raise error

            self._generation += 1
            self._state = Ready(handle, inputs, outputs, self._generation)
            return False

    def dispose(self) -> None:
        """Release the handle. Safe to call repeatedly and never raises."""
        with self._lock:
            state = self._state
            if isinstance(state, Closed):
                return
            self._state = Closed()
            if isinstance(state, Ready):
                _close_quietly(state.handle)
                logger.info(f"Session {self.name} closed")
