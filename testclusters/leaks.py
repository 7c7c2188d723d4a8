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

"""Discovery of clusters left behind by earlier test runs."""

from __future__ import annotations

import docker

from testclusters.constants import DEFAULT_PREFIX, K3D_CLUSTER_LABEL


def find_leaked_clusters(docker_client: docker.DockerClient | None = None, prefix: str = DEFAULT_PREFIX) -> list[str]:
    """List k3d clusters whose name starts with ``prefix``.

    Any such cluster still running outside a test is a leftover, e.g. from an
    interrupted run, and may block ports of new clusters.

    Args:
        docker_client: Docker client, defaults to one built from the environment.
        prefix: Name marker of clusters created by testclusters.

    Returns:
        Sorted unique cluster names.
    """
    own_client = docker_client is None
    client = docker_client or docker.from_env()
    try:
        containers = client.containers.list(all=True, filters={"label": K3D_CLUSTER_LABEL})
    finally:
        if own_client:
            client.close()

    names = {container.labels.get(K3D_CLUSTER_LABEL, "") for container in containers}
    return sorted(name for name in names if name.startswith(prefix))
