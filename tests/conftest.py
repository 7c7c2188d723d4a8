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

"""Shared fixtures: a fake provisioning engine and a mocked API access context."""

from __future__ import annotations

import random
from unittest.mock import MagicMock

import pytest
from kubernetes import client

from testclusters.access import AccessContext
from testclusters.cluster import ClusterCoordinator

TEST_NODE_NAME = "k3d-tc-123456-server-0"
TEST_API_PORT = 40123

HEALTHY_CONDITIONS = {
    "Ready": "True",
    "DiskPressure": "False",
    "MemoryPressure": "False",
    "NetworkUnavailable": "False",
    "PIDPressure": "False",
}

KUBECONFIG = {
    "apiVersion": "v1",
    "kind": "Config",
    "clusters": [{"name": "k3d-tc", "cluster": {"server": f"https://0.0.0.0:{TEST_API_PORT}"}}],
    "contexts": [{"name": "k3d-tc", "context": {"cluster": "k3d-tc", "user": "admin@k3d-tc"}}],
    "current-context": "k3d-tc",
    "users": [{"name": "admin@k3d-tc", "user": {"token": "secret"}}],
}


def make_node(name: str = TEST_NODE_NAME, conditions: dict[str, str] | None = None) -> client.V1Node:
    """Build a node with the given ``{type: status}`` conditions."""
    conditions = HEALTHY_CONDITIONS if conditions is None else conditions
    return client.V1Node(
        metadata=client.V1ObjectMeta(name=name),
        status=client.V1NodeStatus(
            conditions=[client.V1NodeCondition(type=kind, status=status) for kind, status in conditions.items()]
        ),
    )


class FakeEngine:
    """Records engine calls and raises the configured errors."""

    def __init__(self, create_error=None, kubeconfig_error=None, delete_error=None):
        self.create_error = create_error
        self.kubeconfig_error = kubeconfig_error
        self.delete_error = delete_error
        self.created = []
        self.deleted = []
        self.timeouts = {}

    def create_cluster(self, spec):
        self.created.append(spec)
        if self.create_error:
            raise self.create_error

    def get_kubeconfig(self, cluster_name, timeout=None):
        self.timeouts["get_kubeconfig"] = timeout
        if self.kubeconfig_error:
            raise self.kubeconfig_error
        return KUBECONFIG

    def delete_cluster(self, cluster_name, timeout=None):
        self.timeouts["delete_cluster"] = timeout
        self.deleted.append(cluster_name)
        if self.delete_error:
            raise self.delete_error


@pytest.fixture
def fake_engine():
    """Engine that succeeds unless told otherwise."""
    return FakeEngine()


@pytest.fixture
def mock_access():
    """Access context whose APIs report one healthy node."""
    core_v1 = MagicMock(spec=client.CoreV1Api)
    core_v1.list_node.return_value = client.V1NodeList(items=[make_node()])
    return AccessContext(
        api_client=MagicMock(spec=client.ApiClient),
        core_v1=core_v1,
        rbac_v1=MagicMock(spec=client.RbacAuthorizationV1Api),
    )


@pytest.fixture
def coordinator(fake_engine, mock_access):
    """Coordinator wired to the fakes, with seeded names and no sleeping."""
    return ClusterCoordinator(
        engine=fake_engine,
        access_factory=lambda kubeconfig: mock_access,
        rng=random.Random(42),
        port_allocator=lambda: TEST_API_PORT,
        sleep=lambda seconds: None,
    )


@pytest.fixture
def mock_core_v1():
    """Bare mocked core API for query tests."""
    return MagicMock(spec=client.CoreV1Api)
