# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Exception hierarchy for the inference harness.

Every failure the harness surfaces derives from :class:`HarnessError`, so
callers can catch one type at the orchestration boundary and turn it into a
failed check.
"""


class HarnessError(RuntimeError):
    pass


class EngineError(HarnessError):
    """Raised by an engine or handle when a native call fails."""


class ConfigurationError(HarnessError):
    """Handle or tensor allocation failed, or the session is not ready."""


class ShapeMismatchError(HarnessError):
    """A buffer is not structurally congruent with its tensor descriptor."""


class UnsupportedOperation(HarnessError):
    """The engine cannot perform the requested operation in this configuration."""


class ConsistencyError(HarnessError):
    """A replacement handle disagrees with the descriptors of the handle it replaced."""


class UseAfterClose(HarnessError):
    """An operation was attempted on a session that has been disposed."""
