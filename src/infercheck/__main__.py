# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""CLI for the inference check suite.

Usage:
    python -m infercheck
    python -m infercheck --no-reset-support --seeds 1,2,3
    python -m infercheck --output-name logit_scale
"""

import argparse
import sys
from typing import List, Optional

from infercheck.checks import compose_report, run_checks
from infercheck.config import HarnessConfig, parse_seeds
from infercheck.harness import InferenceHarness
from infercheck.logger import set_level
from infercheck.reference_engine import NumpyEngine, ReferenceModel


def _parse_shape(value: str):
    try:
        return tuple(int(d) for d in value.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid shape: {value!r}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="infercheck",
        description="Check that a model's outputs vary with input, repeat for "
        "identical input, and reset cleanly",
    )
    state = parser.add_mutually_exclusive_group()
    state.add_argument(
        "--stateful",
        dest="stateful",
        action="store_true",
        default=True,
        help="Model keeps state across runs until reset (default)",
    )
    state.add_argument("--stateless", dest="stateful", action="store_false")
    parser.add_argument(
        "--no-reset-support",
        action="store_true",
        help="Backend reports reset as unsupported, forcing handle replacement",
    )
    parser.add_argument(
        "--input-shape",
        type=_parse_shape,
        default=ReferenceModel.input_shape,
        help="Comma-separated input shape (default: 1,3,32,32)",
    )
    parser.add_argument("--embedding-dim", type=int, default=512)
    parser.add_argument(
        "--output-name", default=None, help="Use this output instead of probing"
    )
    parser.add_argument(
        "--seeds", default=None, help="Comma-separated inference seeds (default: 1..6)"
    )
    parser.add_argument(
        "--no-fresh-state",
        action="store_true",
        help="Do not reset state before each single inference",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level")

    args = parser.parse_args(argv)
    set_level(args.log_level)

    try:
        model = ReferenceModel(
            input_shape=args.input_shape,
            embedding_dim=args.embedding_dim,
            stateful=args.stateful,
            supports_reset=not args.no_reset_support,
        )
        overrides = {"fresh_state_per_run": not args.no_fresh_state}
        if args.output_name:
            overrides["output_name"] = args.output_name
        if args.seeds:
            overrides["inference_seeds"] = parse_seeds(args.seeds)
        config = HarnessConfig.from_env(**overrides)
    except ValueError as e:
        parser.error(str(e))

    harness = InferenceHarness(NumpyEngine(), model, config, name="reference")
    try:
        results, verdict = run_checks(harness)
    finally:
        harness.dispose()

    print(compose_report(results, verdict), end="")
    return 0 if verdict.passed and all(r.passed for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
