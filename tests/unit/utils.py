# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Engines with scripted failures, built on the reference engine."""

from infercheck.engine import Engine
from infercheck.errors import EngineError, UnsupportedOperation
from infercheck.reference_engine import NumpyEngine, ReferenceHandle
from infercheck.tensor_info import TensorDescriptor


class FailingHandle(ReferenceHandle):
    def allocate_tensors(self):
        raise EngineError("out of device memory")


class FailingEngine(Engine):
    """Fails in ``allocate`` or, with fail_on="tensors", in allocate_tensors."""

    def __init__(self, fail_on="allocate"):
        self.fail_on = fail_on
        self.handles = []

    def allocate(self, model_ref):
        if self.fail_on == "allocate":
            raise EngineError("device not found")
        handle = FailingHandle(model_ref, handle_id=len(self.handles))
        self.handles.append(handle)
        return handle


class _HandleClassEngine(NumpyEngine):
    handle_cls = ReferenceHandle

    def allocate(self, model_ref):
        handle = self.handle_cls(model_ref, handle_id=len(self.handles))
        self.handles.append(handle)
        return handle


class DriftingEngine(NumpyEngine):
    """Reports a wider image embedding from the second handle on."""

    def allocate(self, model_ref):
        handle = super().allocate(model_ref)
        if handle.handle_id > 0:
            d = handle._outputs[2]
            handle._outputs[2] = TensorDescriptor(
                d.index, d.name, (d.shape[0], d.shape[1] + 1), d.type, d.dtype
            )
        return handle


class RaisingResetHandle(ReferenceHandle):
    def reset_state(self):
        raise EngineError("device lost")


class RaisingResetEngine(_HandleClassEngine):
    handle_cls = RaisingResetHandle


class UnsupportedRaisingHandle(ReferenceHandle):
    def reset_state(self):
        raise UnsupportedOperation("delegate cannot reset variable tensors")


class UnsupportedRaisingEngine(_HandleClassEngine):
    handle_cls = UnsupportedRaisingHandle


class CloseErrorHandle(ReferenceHandle):
    def close(self):
        super().close()
        raise EngineError("close failed")


class CloseErrorEngine(_HandleClassEngine):
    handle_cls = CloseErrorHandle
