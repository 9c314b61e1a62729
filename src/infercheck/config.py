# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Harness configuration"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from .selector import DEFAULT_PROBE_SEEDS

# Environment overrides read by HarnessConfig.from_env()
OUTPUT_NAME_ENV = "INFERCHECK_OUTPUT_NAME"
PROBE_SEEDS_ENV = "INFERCHECK_PROBE_SEEDS"
INFERENCE_SEEDS_ENV = "INFERCHECK_INFERENCE_SEEDS"


def parse_seeds(value: str) -> Tuple[int, ...]:
    """Parse a comma-separated seed list such as ``"1,2,3"``."""
    try:
        return tuple(int(s) for s in value.split(",") if s.strip())
    except ValueError:
        raise ValueError(f"Seeds must be comma-separated integers, got {value!r}")


@dataclass
class HarnessConfig:
    """Configuration of an InferenceHarness and its check suite"""

    probe_seeds: Tuple[int, int] = DEFAULT_PROBE_SEEDS
    inference_seeds: Tuple[int, ...] = (1, 2, 3, 4, 5, 6)
    reset_seeds: Tuple[int, int] = (1, 2)
    sample_size: int = 3
    # Select the output by name instead of probing, e.g. when the signal
    # is a scalar output
    output_name: Optional[str] = None
    # Start every run_one from fresh model state
    fresh_state_per_run: bool = True

    def __post_init__(self):
        self.probe_seeds = tuple(self.probe_seeds)
        self.inference_seeds = tuple(self.inference_seeds)
        self.reset_seeds = tuple(self.reset_seeds)
        if len(self.probe_seeds) != 2 or self.probe_seeds[0] == self.probe_seeds[1]:
            raise ValueError(
                f"probe_seeds must be two distinct seeds, got {self.probe_seeds}"
            )
        if len(self.reset_seeds) != 2 or self.reset_seeds[0] == self.reset_seeds[1]:
            raise ValueError(
                f"reset_seeds must be two distinct seeds, got {self.reset_seeds}"
            )
        # One distinct seed yields one hash, which cannot show outputs vary
        if len(set(self.inference_seeds)) < 2:
            raise ValueError(
                "inference_seeds needs at least two distinct seeds, "
                f"got {self.inference_seeds}"
            )
        if self.sample_size < 1:
            raise ValueError(f"sample_size must be positive, got {self.sample_size}")

    @classmethod
    def from_env(cls, **kwargs) -> "HarnessConfig":
        """Build a config, letting INFERCHECK_* variables override defaults.

        Explicit keyword arguments win over the environment.
        """
        env = {}
        if os.environ.get(OUTPUT_NAME_ENV):
            env["output_name"] = os.environ[OUTPUT_NAME_ENV]
        if os.environ.get(PROBE_SEEDS_ENV):
            env["probe_seeds"] = parse_seeds(os.environ[PROBE_SEEDS_ENV])
        if os.environ.get(INFERENCE_SEEDS_ENV):
            env["inference_seeds"] = parse_seeds(os.environ[INFERENCE_SEEDS_ENV])
        env.update(kwargs)
        return cls(**env)
