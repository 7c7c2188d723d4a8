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

"""Lookout: fluent, lazily evaluated queries against live cluster resources.

Filters only build up a :class:`Query`; every terminal call (``raw``,
``expect_len``, ``logs``, ``events``) sends exactly one request. Nothing is
cached, so polling a terminal call observes the cluster as it converges::

    pods = cluster.lookout().pods("default").by_labels("app=nginx").by_field_selector("status.phase=Running").list()
    pods.expect_len(3)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from kubernetes.client import CoreV1Api

from testclusters.errors import CountMismatchError


class ResourceKind(str, Enum):
    """Resource kinds a query can list."""

    POD = "pod"
    EVENT = "event"


@dataclass(frozen=True)
class Query:
    """Accumulated filters for a namespaced resource listing."""

    core_v1: CoreV1Api = field(repr=False, compare=False)
    kind: ResourceKind
    namespace: str
    label_selectors: tuple[str, ...] = ()
    field_selectors: tuple[str, ...] = ()

    def by_labels(self, selector: str) -> Query:
        """Narrow the query by a label selector such as ``app=nginx``."""
        return replace(self, label_selectors=self.label_selectors + (selector,))

    def by_field_selector(self, selector: str) -> Query:
        """Narrow the query by a field selector such as ``status.phase=Running``."""
        return replace(self, field_selectors=self.field_selectors + (selector,))

    def list(self) -> ResourceList:
        return ResourceList(self)

    def execute(self, timeout: float | None = None):
        """Send the list request. Prefer the terminal methods of :meth:`list`."""
        kwargs: dict = {"_request_timeout": timeout}
        if self.label_selectors:
            kwargs["label_selector"] = ",".join(self.label_selectors)
        if self.field_selectors:
            kwargs["field_selector"] = ",".join(self.field_selectors)

        if self.kind == ResourceKind.POD:
            return self.core_v1.list_namespaced_pod(self.namespace, **kwargs)
        return self.core_v1.list_namespaced_event(self.namespace, **kwargs)


@dataclass(frozen=True)
class ResourceList:
    """Terminal operations over a query's result list."""

    query: Query

    def raw(self, timeout: float | None = None):
        """Return the full list object (e.g. ``V1PodList``)."""
        return self.query.execute(timeout)

    def expect_len(self, expected: int, timeout: float | None = None) -> None:
        """Raise unless the list currently holds exactly ``expected`` items.

        Raises:
            CountMismatchError: If the observed count differs.
        """
        actual = len(self.raw(timeout).items)
        if actual != expected:
            raise CountMismatchError(self.query.kind.value, expected, actual)


@dataclass(frozen=True)
class PodSelector:
    """Addresses a single pod by namespace and name."""

    core_v1: CoreV1Api = field(repr=False, compare=False)
    namespace: str
    name: str

    def logs(self, container: str | None = None, timeout: float | None = None) -> bytes:
        """Return the pod's log output as raw bytes."""
        kwargs: dict = {"_preload_content": False, "_request_timeout": timeout}
        if container:
            kwargs["container"] = container
        response = self.core_v1.read_namespaced_pod_log(self.name, self.namespace, **kwargs)
        return response.data

    def events(self, timeout: float | None = None):
        """Return the events whose involved object is this pod."""
        return (
            Query(self.core_v1, ResourceKind.EVENT, self.namespace)
            .by_field_selector(f"involvedObject.name={self.name}")
            .list()
            .raw(timeout)
        )


class Lookout:
    """Entry point for resource queries. Borrows the cluster's core API."""

    def __init__(self, core_v1: CoreV1Api) -> None:
        self._core_v1 = core_v1

    def pods(self, namespace: str) -> Query:
        """Start a query over the pods of ``namespace``."""
        return Query(self._core_v1, ResourceKind.POD, namespace)

    def events(self, namespace: str) -> Query:
        """Start a query over the events of ``namespace``."""
        return Query(self._core_v1, ResourceKind.EVENT, namespace)

    def pod(self, namespace: str, name: str) -> PodSelector:
        return PodSelector(self._core_v1, namespace, name)
