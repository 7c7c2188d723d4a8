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

"""pytest plugin: a ``k3d_cluster`` fixture that lives as long as one test.

Override ``k3d_cluster_opts`` in a conftest to customize the cluster::

    @pytest.fixture
    def k3d_cluster_opts():
        return ClusterOpts(cluster_name_prefix="mytest", log_level=LogLevel.DEBUG)
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from testclusters import logger
from testclusters.cluster import ClusterCoordinator, K3dCluster
from testclusters.config import ClusterOpts
from testclusters.errors import TerminationError


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "k3d: test creates a real k3d cluster (needs k3d and docker)")


@pytest.fixture
def k3d_cluster_opts() -> ClusterOpts:
    """Options for the ``k3d_cluster`` fixture."""
    return ClusterOpts()


@pytest.fixture
def k3d_coordinator() -> ClusterCoordinator:
    """Coordinator used by the ``k3d_cluster`` fixture."""
    return ClusterCoordinator()


@pytest.fixture
def k3d_cluster(k3d_coordinator: ClusterCoordinator, k3d_cluster_opts: ClusterOpts) -> Iterator[K3dCluster]:
    """A fresh cluster, terminated when the test finishes.

    A failed creation errors the test; there is no retry with the same handle.
    The testclusters logger runs at ``k3d_cluster_opts.log_level`` for the
    duration of the test.
    """
    previous_level = k3d_cluster_opts.apply_log_level()
    try:
        cluster = k3d_coordinator.create(k3d_cluster_opts)
        yield cluster
        try:
            cluster.terminate(timeout=k3d_cluster_opts.cluster_timeout_seconds)
        except TerminationError as err:
            pytest.fail(f"Unexpected error during test tear down: {err}")
    finally:
        logger.setLevel(previous_level)
