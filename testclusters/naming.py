# /*
# Copyright 2026 The Testclusters Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Cluster name prefix validation and generation."""

from __future__ import annotations

import random
import re

from testclusters.constants import (
    CLUSTER_SUFFIX_LENGTH,
    DEFAULT_PREFIX,
    GENERATED_PREFIX_LENGTH,
    NAME_ALPHABET,
    RESTRICTED_NAME_CHARS,
)
from testclusters.errors import InvalidNameError

RESTRICTED_NAME_PATTERN = re.compile(RESTRICTED_NAME_CHARS)


def generate_pseudo_suffix(length: int, rng: random.Random | None = None) -> str:
    """Return ``length`` random lowercase alphanumeric characters."""
    rng = rng or random.Random()
    return "".join(rng.choice(NAME_ALPHABET) for _ in range(length))


def validate_cluster_name_prefix(prefix: str, rng: random.Random | None = None) -> str:
    """Prepend the system marker to ``prefix`` and validate the result.

    Container names are composed of the engine prefix, this prefix, a
    per-cluster suffix and the node name, and the engine rejects long or
    unusual names deep inside provisioning. Checking here fails early.

    Args:
        prefix: Caller-supplied prefix; empty generates a random one.
        rng: Random source for the generated part.

    Returns:
        The total prefix, e.g. ``tc-myproject``.

    Raises:
        InvalidNameError: If the total prefix does not match the grammar.
    """
    if not prefix:
        return DEFAULT_PREFIX + generate_pseudo_suffix(GENERATED_PREFIX_LENGTH, rng)

    total_prefix = DEFAULT_PREFIX + prefix
    if not RESTRICTED_NAME_PATTERN.fullmatch(total_prefix):
        raise InvalidNameError(total_prefix, RESTRICTED_NAME_CHARS)
    return total_prefix


def generate_cluster_name(prefix: str, rng: random.Random | None = None) -> str:
    """Append a random per-cluster suffix to a validated prefix."""
    return f"{prefix}-{generate_pseudo_suffix(CLUSTER_SUFFIX_LENGTH, rng)}"
