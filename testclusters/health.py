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

"""Node health policy, node snapshots, and kubelet eviction helpers."""

from __future__ import annotations

from dataclasses import dataclass

from kubernetes.client import CoreV1Api, V1Node
from kubernetes.client.exceptions import ApiException

from testclusters.constants import CONDITION_READY, PRESSURE_CONDITIONS, STATUS_FALSE, STATUS_TRUE
from testclusters.errors import NodeUnhealthyError, UnsupportedConditionError


@dataclass(frozen=True)
class NodeSnapshot:
    """Nodes as listed at one point in time. Re-fetch to observe changes."""

    nodes: tuple[V1Node, ...] = ()

    def __str__(self) -> str:
        return ", ".join(f"node: {node.metadata.name}" for node in self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)


def _node_conditions(node: V1Node) -> list:
    return list((node.status.conditions if node.status else None) or [])


def check_condition(snapshot: NodeSnapshot) -> None:
    """Raise if any node in ``snapshot`` is not usable.

    ``Ready`` must be ``True``; the pressure conditions and
    ``NetworkUnavailable`` must be ``False``. An empty snapshot passes.

    Raises:
        UnsupportedConditionError: On a condition kind the policy does not know.
        NodeUnhealthyError: On the first condition with an unhealthy value.
    """
    for node in snapshot.nodes:
        conditions = _node_conditions(node)
        for condition in conditions:
            if condition.type == CONDITION_READY:
                usable = condition.status == STATUS_TRUE
            elif condition.type in PRESSURE_CONDITIONS:
                usable = condition.status == STATUS_FALSE
            else:
                raise UnsupportedConditionError(condition.type)

            if not usable:
                name = node.metadata.name
                summary = ", ".join(f"{c.type}={c.status}" for c in conditions)
                raise NodeUnhealthyError(
                    f"node is not healthy: condition list for {name} indicates a problem: {summary}",
                    node_name=name,
                    conditions=conditions,
                )


def fetch_node_snapshot(core_v1: CoreV1Api, timeout: float | None = None) -> NodeSnapshot:
    """List the cluster's nodes.

    Args:
        core_v1: Core API of the cluster.
        timeout: Request timeout in seconds.

    Raises:
        NodeUnhealthyError: If listing fails or no node exists.
    """
    try:
        node_list = core_v1.list_node(_request_timeout=timeout)
    except ApiException as err:
        raise NodeUnhealthyError(f"could not list nodes: {err.reason}") from err

    if not node_list.items:
        raise NodeUnhealthyError("could not return node info because no node was found (was it killed in the meantime?)")
    return NodeSnapshot(tuple(node_list.items))


def kubelet_eviction_fs_by_percentage(percentage: int) -> str:
    """Build a kubelet hard-eviction argument from a free-space percentage.

    With ``percentage=10`` the nodes get tainted once less than 10% of the
    image and node filesystems is free, blocking new workloads.

    Raises:
        ValueError: If ``percentage`` is outside 0..100.
    """
    if percentage < 0 or percentage > 100:
        raise ValueError(f"percentage must be in range of 0 and 100, got {percentage}")
    return f"imagefs.available<{percentage}%,nodefs.available<{percentage}%"
