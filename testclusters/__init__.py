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

"""testclusters - disposable k3d clusters for tests."""

from __future__ import annotations

import logging

from rich.console import Console

console = Console(stderr=True)
logger = logging.getLogger("testclusters")

from testclusters.cluster import ClusterCoordinator, ClusterState, K3dCluster  # noqa: E402
from testclusters.config import ClusterOpts, LogLevel  # noqa: E402
from testclusters.errors import (  # noqa: E402
    AccessBootstrapError,
    ClusterError,
    ClusterNotInitializedError,
    CountMismatchError,
    CredentialRetrievalError,
    InvalidNameError,
    ManifestApplyError,
    NodeUnhealthyError,
    ProvisioningError,
    ReadinessError,
    ReadinessTimeoutError,
    TerminationError,
    UnsupportedConditionError,
)
from testclusters.health import kubelet_eviction_fs_by_percentage  # noqa: E402
from testclusters.lookout import Lookout  # noqa: E402

__all__ = [
    "AccessBootstrapError",
    "ClusterCoordinator",
    "ClusterError",
    "ClusterNotInitializedError",
    "ClusterOpts",
    "ClusterState",
    "CountMismatchError",
    "CredentialRetrievalError",
    "InvalidNameError",
    "K3dCluster",
    "LogLevel",
    "Lookout",
    "ManifestApplyError",
    "NodeUnhealthyError",
    "ProvisioningError",
    "ReadinessError",
    "ReadinessTimeoutError",
    "TerminationError",
    "UnsupportedConditionError",
    "console",
    "kubelet_eviction_fs_by_percentage",
    "logger",
]
