# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from .buffers import (
    build_buffer,
    build_for,
    buffer_shape,
    check_congruent,
    fill_from_array,
    flatten,
    to_array,
)
from .checks import CheckResult, Verdict, analyze_hashes, compose_report, run_checks
from .config import HarnessConfig
from .engine import Engine, Handle, ResetStatus
from .errors import (
    ConfigurationError,
    ConsistencyError,
    EngineError,
    HarnessError,
    ShapeMismatchError,
    UnsupportedOperation,
    UseAfterClose,
)
from .harness import InferenceHarness, InferenceResult
from .hashing import content_hash, format_sample
from .reference_engine import NumpyEngine, ReferenceModel
from .selector import OutputSelection, select_output_index
from .session import Closed, Ready, Session, Uninitialized
from .tensor_info import TensorDescriptor, TensorType

__all__ = [
    "build_buffer",
    "build_for",
    "buffer_shape",
    "check_congruent",
    "fill_from_array",
    "flatten",
    "to_array",
    "CheckResult",
    "Verdict",
    "analyze_hashes",
    "compose_report",
    "run_checks",
    "HarnessConfig",
    "Engine",
    "Handle",
    "ResetStatus",
    "ConfigurationError",
    "ConsistencyError",
    "EngineError",
    "HarnessError",
    "ShapeMismatchError",
    "UnsupportedOperation",
    "UseAfterClose",
    "InferenceHarness",
    "InferenceResult",
    "content_hash",
    "format_sample",
    "NumpyEngine",
    "ReferenceModel",
    "OutputSelection",
    "select_output_index",
    "Closed",
    "Ready",
    "Session",
    "Uninitialized",
    "TensorDescriptor",
    "TensorType",
]
