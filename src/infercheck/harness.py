# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Orchestration surface used by the check suite and any front end."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .buffers import Buffer, flatten
from .config import HarnessConfig
from .engine import Engine
from .errors import ConfigurationError
from .hashing import content_hash, format_sample
from .inputs import generate_input
from .logger import get_logger
from .selector import OutputSelection
from .session import Ready, Session

logger = get_logger()


@dataclass
class InferenceResult:
    """Hash and leading values of the selected output of one run."""

    hash: str
    sample: str
    values: List[float] = field(default_factory=list, repr=False)


class InferenceHarness:
    """Drive a model through a Session and report hashes of its signal output.

    Example:
        >>> harness = InferenceHarness(NumpyEngine(), ReferenceModel())
        >>> harness.ensure_ready()
        >>> harness.select_output_once()
        2
        >>> result = harness.run_one(1)  # result.hash is 8 hex digits
        >>> harness.dispose()
    """

    def __init__(
        self,
        engine: Engine,
        model_ref: Any,
        config: Optional[HarnessConfig] = None,
        name: Optional[str] = None,
    ):
        self.config = config or HarnessConfig()
        self.session = Session(engine, model_ref, name=name)
        self.selection = OutputSelection()

    def __enter__(self):
        self.ensure_ready()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()

    def ensure_ready(self) -> Ready:
        return self.session.ensure_ready()

    def dispose(self) -> None:
        self.session.dispose()

    def _infer(self, seed: int, fresh_state: bool) -> Dict[int, Buffer]:
        if fresh_state:
            self.session.attempt_reset()
        input_buffer = generate_input(seed, self.session.input_descriptor)
        outputs = self.session.allocate_outputs()
        return self.session.run(input_buffer, outputs)

    def probe(self, seed: int) -> List[Buffer]:
        """One pass from fresh state; every output in descriptor order."""
        outputs = self._infer(seed, fresh_state=True)
        return [outputs[d.index] for d in self.session.output_descriptors]

    def select_output_once(self) -> int:
        """Choose the signal-bearing output index, probing only the first time.

        With ``config.output_name`` set, that output is used without probing.
        """
        if self.selection.is_selected:
            return self.selection.chosen_index

        descriptors = self.session.output_descriptors
        if self.config.output_name is not None:
            for d in descriptors:
                if d.name == self.config.output_name:
                    logger.info(f"Using configured output {d.name} (index {d.index})")
                    return self.selection.pin(d.index)
            raise ConfigurationError(
                f"No output named {self.config.output_name!r}, "
                f"available: {[d.name for d in descriptors]}"
            )

        eligible = [d.index for d in descriptors if d.type.is_numeric]
        return self.selection.select_once(
            self.probe, seeds=self.config.probe_seeds, eligible=eligible
        )

    def _result(self, outputs: Dict[int, Buffer], index: int) -> InferenceResult:
        values = flatten(outputs[index])
        return InferenceResult(
            hash=content_hash(values),
            sample=format_sample(values, self.config.sample_size),
            values=values,
        )

    def run_one(self, seed: int) -> InferenceResult:
        index = self.select_output_once()
        outputs = self._infer(seed, fresh_state=self.config.fresh_state_per_run)
        result = self._result(outputs, index)
        logger.info(f"Seed {seed}: hash {result.hash}, sample {result.sample}")
        return result

    def run_two_with_reset(self, seed1: int, seed2: int) -> Tuple[str, str]:
        """Run two seeds through one handle with a state reset in between.

        If the backend cannot reset in place the session substitutes a fresh
        handle, which is equivalent for this purpose.
        """
        index = self.select_output_once()
        outputs1 = self._infer(seed1, fresh_state=self.config.fresh_state_per_run)
        hash1 = self._result(outputs1, index).hash

        in_place = self.session.attempt_reset()
        if not in_place:
            logger.info("Reset fell back to a replacement handle")

        outputs2 = self._infer(seed2, fresh_state=False)
        hash2 = self._result(outputs2, index).hash
        return hash1, hash2
