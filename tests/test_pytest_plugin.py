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

"""Tests for the k3d_cluster pytest fixture."""

CONFTEST = """
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from kubernetes import client

from testclusters.cluster import ClusterCoordinator
from testclusters.config import ClusterOpts


class RecordingEngine:
    def create_cluster(self, spec):
        Path("created.txt").write_text(spec.name)

    def get_kubeconfig(self, cluster_name, timeout=None):
        return {"clusters": [{"name": cluster_name}]}

    def delete_cluster(self, cluster_name, timeout=None):
        Path("deleted.txt").write_text(cluster_name)


@pytest.fixture
def k3d_cluster_opts():
    return ClusterOpts(cluster_name_prefix="plugin", log_level="debug")


@pytest.fixture
def k3d_coordinator():
    access = MagicMock()
    access.core_v1.list_node.return_value = client.V1NodeList(
        items=[
            client.V1Node(
                metadata=client.V1ObjectMeta(name="server-0"),
                status=client.V1NodeStatus(conditions=[client.V1NodeCondition(type="Ready", status="True")]),
            )
        ]
    )
    return ClusterCoordinator(
        engine=RecordingEngine(),
        access_factory=lambda kubeconfig: access,
        port_allocator=lambda: 40000,
        sleep=lambda seconds: None,
    )
"""


def test_fixture_creates_and_terminates_cluster(pytester):
    pytester.makeconftest(CONFTEST)
    pytester.makepyfile(
        """
        import logging

        def test_uses_cluster(k3d_cluster):
            assert k3d_cluster.cluster_name.startswith("tc-plugin-")
            assert logging.getLogger("testclusters").level == logging.DEBUG
            assert k3d_cluster.client_access() is not None
        """
    )

    result = pytester.runpytest()

    result.assert_outcomes(passed=1)
    created = (pytester.path / "created.txt").read_text()
    assert (pytester.path / "deleted.txt").read_text() == created


def test_failed_teardown_errors_the_test(pytester):
    pytester.makeconftest(
        CONFTEST.replace(
            '        Path("deleted.txt").write_text(cluster_name)',
            '        raise RuntimeError("k3d is gone")',
        )
    )
    pytester.makepyfile(
        """
        def test_uses_cluster(k3d_cluster):
            pass
        """
    )

    result = pytester.runpytest()

    result.assert_outcomes(passed=1, errors=1)
    result.stdout.fnmatch_lines(["*Unexpected error during test tear down*"])


def test_registers_k3d_marker(pytester):
    result = pytester.runpytest("--markers")

    result.stdout.fnmatch_lines(["@pytest.mark.k3d:*"])
