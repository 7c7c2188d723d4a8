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

"""Error taxonomy for cluster creation, queries, and teardown.

Every error names the lifecycle step it belongs to. Step-local failures are
raised ``from`` their cause so the causal chain is kept.
"""

from __future__ import annotations


class ClusterError(RuntimeError):
    """Base class for all testclusters errors."""

    step = "cluster"

    def __init__(self, message: str) -> None:
        super().__init__(f"{self.step}: {message}")
        self.message = message


class InvalidNameError(ClusterError, ValueError):
    """The cluster name prefix does not match the restricted grammar.

    Raised before any side effect happened.
    """

    step = "validate-name"

    def __init__(self, name: str, pattern: str) -> None:
        super().__init__(f"total cluster name prefix '{name}' looks invalid (valid pattern: {pattern})")
        self.name = name
        self.pattern = pattern


class ProvisioningError(ClusterError):
    """The provisioning engine failed to realize the cluster spec."""

    step = "provision"


class CredentialRetrievalError(ClusterError):
    """The kubeconfig could not be fetched or turned into an API client."""

    step = "fetch-credentials"


class AccessBootstrapError(ClusterError):
    """Creating the admin service account or its RBAC objects failed."""

    step = "bootstrap-access"


class ReadinessError(ClusterError):
    """Waiting for the control plane failed with an error that retrying cannot fix."""

    step = "await-readiness"


class ReadinessTimeoutError(ReadinessError):
    """The retry budget ran out before the precondition held."""


class NodeUnhealthyError(ClusterError):
    """A node reports a condition that makes the cluster unusable."""

    step = "check-health"

    def __init__(self, message: str, node_name: str | None = None, conditions: list | None = None) -> None:
        super().__init__(message)
        self.node_name = node_name
        self.conditions = conditions or []


class UnsupportedConditionError(ClusterError):
    """A node reports a condition kind the health policy does not know."""

    step = "check-health"

    def __init__(self, condition_type: str) -> None:
        super().__init__(f"unsupported node condition {condition_type}")
        self.condition_type = condition_type


class TerminationError(ClusterError):
    """Tearing the cluster down failed."""

    step = "terminate"


class ClusterNotInitializedError(ClusterError):
    """The handle was used before it was fully initialized."""

    step = "client-access"


class CountMismatchError(ClusterError, AssertionError):
    """A resource list did not have the expected number of items."""

    step = "lookout"

    def __init__(self, kind: str, expected: int, actual: int) -> None:
        super().__init__(f"expected {expected} {kind}(s) but found {actual}")
        self.kind = kind
        self.expected = expected
        self.actual = actual


class ManifestApplyError(ClusterError):
    """Applying a manifest document against the cluster failed."""

    step = "apply-manifest"
