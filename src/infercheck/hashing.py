# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import hashlib
from typing import Sequence

HASH_PRECISION = 8
HASH_LENGTH = 8


def content_hash(values: Sequence[float]) -> str:
    """Short content hash of a flat sequence of reals.

    Values are rendered in fixed point before hashing, so two sequences hash
    equal exactly when they agree to ``HASH_PRECISION`` decimal places.
    """
    h = hashlib.sha1()
    h.update(",".join(f"{v:.{HASH_PRECISION}f}" for v in values).encode("utf-8"))
    return h.hexdigest()[:HASH_LENGTH]


def format_sample(values: Sequence[float], count: int = 3) -> str:
    return ", ".join(f"{v:.6f}" for v in list(values)[:count])
