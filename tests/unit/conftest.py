# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import logging

import pytest

from infercheck.config import HarnessConfig
from infercheck.harness import InferenceHarness
from infercheck.reference_engine import NumpyEngine, ReferenceModel

SMALL_INPUT_SHAPE = (1, 3, 8, 8)


@pytest.fixture(autouse=True)
def propagate_logs():
    """Let caplog see records from the package logger."""
    logger = logging.getLogger("infercheck")
    previous = logger.propagate
    logger.propagate = True
    yield
    logger.propagate = previous


@pytest.fixture
def reference_model():
    return ReferenceModel(input_shape=SMALL_INPUT_SHAPE, embedding_dim=16)


@pytest.fixture
def engine():
    return NumpyEngine()


@pytest.fixture
def harness(engine, reference_model):
    h = InferenceHarness(engine, reference_model, HarnessConfig(), name="test")
    yield h
    h.dispose()
