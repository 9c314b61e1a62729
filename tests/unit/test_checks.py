# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import logging

from utils import FailingEngine

from infercheck.checks import (
    CheckResult,
    Verdict,
    analyze_hashes,
    compose_report,
    run_checks,
)
from infercheck.config import HarnessConfig
from infercheck.harness import InferenceHarness
from infercheck.reference_engine import NumpyEngine, ReferenceModel

CHECK_NAMES = [
    "Buffer Creation",
    "Model Loading",
    "Basic Inference",
    "Inference Test 2",
    "Inference Test 3",
    "Inference Test 4",
    "Inference Test 5",
    "Inference Test 6",
    "Consistency Test",
    "Reset Test",
]


def by_name(results):
    return {r.name: r for r in results}


def test_all_checks_pass_on_reference_model(harness):
    results, verdict = run_checks(harness)
    assert [r.name for r in results] == CHECK_NAMES
    assert all(r.passed for r in results), [r for r in results if not r.passed]
    assert verdict.passed
    assert len(verdict.unique_hashes) == 6


def test_output_selection_is_logged_not_reported(harness, caplog):
    caplog.set_level(logging.INFO, logger="infercheck")
    results, _ = run_checks(harness)
    assert "Output Selection" not in by_name(results)
    assert "Selected output tensor index: 2" in caplog.text


def test_model_loading_details(harness):
    results, _ = run_checks(harness)
    details = by_name(results)["Model Loading"].details
    assert details == "Input: [1, 3, 8, 8], Output: [[], [1, 16], [1, 16]]"


def test_checks_pass_when_reset_is_unsupported():
    model = ReferenceModel(
        input_shape=(1, 3, 8, 8), embedding_dim=16, supports_reset=False
    )
    harness = InferenceHarness(NumpyEngine(), model)
    results, verdict = run_checks(harness)
    harness.dispose()
    assert all(r.passed for r in results)
    assert verdict.passed


def test_stale_state_fails_consistency():
    model = ReferenceModel(input_shape=(1, 3, 8, 8), embedding_dim=16)
    config = HarnessConfig(fresh_state_per_run=False)
    harness = InferenceHarness(NumpyEngine(), model, config)
    results, _ = run_checks(harness)
    harness.dispose()
    consistency = by_name(results)["Consistency Test"]
    assert not consistency.passed
    assert consistency.details.startswith("Same input -> Same output: False")


def test_constant_output_fails_verdict():
    # Pinning the input-independent output makes every seed hash the same
    model = ReferenceModel(input_shape=(1, 3, 8, 8), embedding_dim=16)
    config = HarnessConfig(output_name="text_embeds")
    harness = InferenceHarness(NumpyEngine(), model, config)
    results, verdict = run_checks(harness)
    harness.dispose()
    assert not verdict.passed
    assert len(verdict.unique_hashes) == 1
    assert "IDENTICAL OUTPUTS DETECTED" in verdict.summary
    assert not by_name(results)["Reset Test"].passed


def test_failures_are_recorded_not_raised(reference_model):
    harness = InferenceHarness(FailingEngine(), reference_model)
    results, verdict = run_checks(harness)
    named = by_name(results)
    assert named["Buffer Creation"].passed
    assert not named["Model Loading"].passed
    assert named["Model Loading"].details.startswith("ERROR: ")
    assert "device not found" in named["Model Loading"].details
    assert not any(r.passed for r in results[1:])
    assert not verdict.passed
    assert verdict.summary == "TEST FAILED: NO INFERENCE PRODUCED A HASH"


def test_analyze_hashes():
    assert analyze_hashes(["a", "b", "a"]).passed
    assert not analyze_hashes(["a", "a"]).passed
    assert not analyze_hashes(["", ""]).passed
    assert analyze_hashes(["a", "b", "a"]).unique_hashes == ["a", "b"]


def test_passing_summary_lists_hashes():
    verdict = analyze_hashes(["h1", "h2", "h3", "h4"])
    assert "TEST PASSED" in verdict.summary
    assert "Unique outputs: 4/4" in verdict.summary
    assert "Output hashes: h1, h2, h3..." in verdict.summary


def test_compose_report():
    results = [
        CheckResult("Model Loading", True, "Input: [1], Output: [[1, 4]]"),
        CheckResult("Reset Test", False, "ERROR: boom"),
    ]
    report = compose_report(results, Verdict(passed=False, hashes=["x", "x"]))
    lines = report.splitlines()
    assert lines[0] == "Overall Result:"
    assert lines[1] == "TEST FAILED: IDENTICAL OUTPUTS DETECTED"
    assert "Individual Tests:" in lines
    assert lines[-2] == "- PASS Model Loading: Input: [1], Output: [[1, 4]]"
    assert lines[-1] == "- FAIL Reset Test: ERROR: boom"
