# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Check suite: different inputs differ, same input repeats, reset works."""

import platform
from dataclasses import dataclass, field
from typing import Callable, List, Sequence, Tuple

from .buffers import build_buffer, flatten
from .harness import InferenceHarness
from .logger import get_logger
from .tensor_info import TensorType

logger = get_logger()


@dataclass
class CheckResult:
    """Outcome of a single check."""

    name: str
    passed: bool
    details: str


@dataclass
class Verdict:
    """Overall outcome derived from the hashes of the inference checks."""

    passed: bool
    hashes: List[str] = field(default_factory=list)

    @property
    def unique_hashes(self) -> List[str]:
        return list(dict.fromkeys(self.hashes))

    @property
    def summary(self) -> str:
        if not self.hashes:
            return "TEST FAILED: NO INFERENCE PRODUCED A HASH"
        unique = self.unique_hashes
        if not self.passed:
            return (
                "TEST FAILED: IDENTICAL OUTPUTS DETECTED\n"
                "Different inputs produced identical outputs\n"
                f"All output hashes: {self.hashes[0]}\n"
                "Use a fresh handle per inference, or reset state when "
                "reusing the same one\n"
                f"Platform: {platform.system()}"
            )
        shown = ", ".join(unique[:3]) + ("..." if len(unique) > 3 else "")
        return (
            "TEST PASSED: INFERENCE WORKING CORRECTLY\n"
            "Different inputs produced different outputs\n"
            f"Unique outputs: {len(unique)}/{len(self.hashes)}\n"
            f"Output hashes: {shown}\n"
            f"Platform: {platform.system()}"
        )


def analyze_hashes(hashes: Sequence[str]) -> Verdict:
    """Fail when every seed produced the same output (or none produced one)."""
    hashes = [h for h in hashes if h]
    return Verdict(passed=len(set(hashes)) > 1, hashes=hashes)


def _check(name: str, fn: Callable[[], Tuple[bool, str]]) -> CheckResult:
    try:
        passed, details = fn()
    except Exception as e:
        logger.error(f"ERROR in {name}: {e}", exc_info=True)
        return CheckResult(name, False, f"ERROR: {e}")
    if not passed:
        logger.warning(f"{name} failed: {details}")
    return CheckResult(name, passed, details)


def check_buffer_creation() -> Tuple[bool, str]:
    flat = flatten(build_buffer([1, 512], TensorType.FLOAT32))
    return len(flat) == 512 and not any(flat), f"Flattened: {len(flat)} elements"


def run_checks(harness: InferenceHarness) -> Tuple[List[CheckResult], Verdict]:
    """Run every check in order. A failing check never stops the run."""
    config = harness.config
    results: List[CheckResult] = []
    hashes: List[str] = []

    results.append(_check("Buffer Creation", check_buffer_creation))

    def model_loading():
        ready = harness.ensure_ready()
        outputs = [list(d.shape) for d in ready.output_descriptors]
        return True, f"Input: {list(ready.input_descriptor.shape)}, Output: {outputs}"

    results.append(_check("Model Loading", model_loading))

    def inference(seed):
        def fn():
            result = harness.run_one(seed)
            hashes.append(result.hash)
            return bool(result.hash), f"Hash: {result.hash}, Sample: {result.sample}"

        return fn

    for i, seed in enumerate(config.inference_seeds, start=1):
        name = "Basic Inference" if i == 1 else f"Inference Test {i}"
        results.append(_check(name, inference(seed)))

    def consistency():
        seed = config.inference_seeds[0]
        h1 = harness.run_one(seed).hash
        h2 = harness.run_one(seed).hash
        same = h1 == h2
        return same, f"Same input -> Same output: {same} ({h1} vs {h2})"

    results.append(_check("Consistency Test", consistency))

    def reset():
        h1, h2 = harness.run_two_with_reset(*config.reset_seeds)
        different = h1 != h2
        return (
            different,
            f"Different inputs -> Different outputs: {different} ({h1} vs {h2})",
        )

    results.append(_check("Reset Test", reset))

    verdict = analyze_hashes(hashes)
    return results, verdict


def compose_report(results: Sequence[CheckResult], verdict: Verdict) -> str:
    lines = ["Overall Result:", verdict.summary.strip(), "", "Individual Tests:"]
    for r in results:
        lines.append(f"- {'PASS' if r.passed else 'FAIL'} {r.name}: {r.details}")
    return "\n".join(lines) + "\n"
