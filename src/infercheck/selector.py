# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Pick the output tensor whose value changes with the input.

Two probe passes with different seeds are compared output by output. Only
outputs with more than one element are candidates: a scalar output usually
carries a secondary signal (a logit scale, a similarity score) rather than
the embedding the harness wants to track.
"""

import threading
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .buffers import Buffer, flatten
from .hashing import content_hash
from .logger import get_logger

logger = get_logger()

Probe = Callable[[int], Sequence[Buffer]]

DEFAULT_PROBE_SEEDS = (1, 2)


def select_output_index(
    probe: Probe,
    seeds: Tuple[int, int] = DEFAULT_PROBE_SEEDS,
    eligible: Optional[Iterable[int]] = None,
    hash_fn: Callable[[Sequence[float]], str] = content_hash,
) -> int:
    """Return the first non-scalar output whose hash differs between probes.

    Args:
        probe: Runs one inference pass for a seed and returns one buffer per
            output, in descriptor order.
        seeds: The two distinct probe seeds.
        eligible: Optional output indices allowed as candidates, e.g. only
            numeric outputs. Defaults to every output.
        hash_fn: Content hash applied to each flattened output.

    Returns:
        The chosen index. If no candidate differs, the first candidate; if
        there are no candidates, 0.
    """
    seed1, seed2 = seeds
    if seed1 == seed2:
        raise ValueError(f"Probe seeds must differ, got {seeds}")

    first = probe(seed1)
    second = probe(seed2)
    if len(first) != len(second):
        raise ValueError(
            f"Probes returned different output counts: {len(first)} vs {len(second)}"
        )

    allowed = set(range(len(first))) if eligible is None else set(eligible)
    candidates: List[int] = []
    flat_first = {}
    for i in sorted(allowed):
        if not 0 <= i < len(first):
            continue
        values = flatten(first[i])
        if len(values) > 1:
            candidates.append(i)
            flat_first[i] = values

    for i in candidates:
        h1 = hash_fn(flat_first[i])
        h2 = hash_fn(flatten(second[i]))
        logger.debug(f"Output {i}: seed {seed1} -> {h1}, seed {seed2} -> {h2}")
        if h1 != h2:
            return i

    if candidates:
        logger.warning(
            f"No output varies between seeds {seed1} and {seed2}, "
            f"falling back to output {candidates[0]}"
        )
        return candidates[0]
    logger.warning("No non-scalar output to choose from, falling back to output 0")
    return 0


class OutputSelection:
    """The chosen output index, decided at most once."""

    def __init__(self):
        self._lock = threading.Lock()
        self._chosen_index: Optional[int] = None

    def __repr__(self) -> str:
        return f"OutputSelection(chosen_index={self._chosen_index})"

    @property
    def chosen_index(self) -> Optional[int]:
        return self._chosen_index

    @property
    def is_selected(self) -> bool:
        return self._chosen_index is not None

    def pin(self, index: int) -> int:
        """Fix the choice without probing."""
        with self._lock:
            self._chosen_index = index
            return index

    def select_once(self, probe: Probe, **kwargs) -> int:
        """Run :func:`select_output_index` on first use and cache the result.

        A probe failure propagates and leaves the selection undecided.
        """
        with self._lock:
            if self._chosen_index is None:
                self._chosen_index = select_output_index(probe, **kwargs)
                logger.info(f"Selected output tensor index: {self._chosen_index}")
            return self._chosen_index
