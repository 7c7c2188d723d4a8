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

"""Constants shared by the cluster lifecycle, naming, and query modules."""

from __future__ import annotations

# -- k3s images --
# k3s versions are tagged with a `+` before `k3s1`, but the images use `-`.
K3S_IMAGE_REPO = "docker.io/rancher/k3s"
K3S_VERSION_1_26 = "v1.26.2-k3s1"
K3S_VERSION_1_28 = "v1.28.2-k3s1"
DEFAULT_K3S_IMAGE = f"{K3S_IMAGE_REPO}:{K3S_VERSION_1_28}"

# -- k3d config --
K3D_CONFIG_API_VERSION = "k3d.io/v1alpha5"
K3D_CONFIG_KIND = "Simple"
K3D_CLUSTER_LABEL = "k3d.cluster"
SERVER_NODE_FILTER = "server:*"
EVICTION_HARD_ARG = "--kubelet-arg=eviction-hard="
PORT_ALREADY_ALLOCATED = "port is already allocated"

# -- Naming --
# Prepended to every cluster so these can be told apart from other k3d clusters.
DEFAULT_PREFIX = "tc-"
# Leaves room for the "k3d-" engine prefix, the cluster suffix and the node name.
RESTRICTED_NAME_CHARS = r"[a-zA-Z0-9][a-zA-Z0-9_.-]{1,37}"
GENERATED_PREFIX_LENGTH = 6
CLUSTER_SUFFIX_LENGTH = 8
NAME_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"

# -- RBAC bootstrap --
APP_NAME = "k8s-containers"
CREATOR_LABEL = "k3s.creator"
ADMIN_SUFFIX = "ford-prefect"
ADMIN_SERVICE_ACCOUNT = f"sa-{ADMIN_SUFFIX}"
ADMIN_CLUSTER_ROLE = f"cr-{ADMIN_SUFFIX}"
ADMIN_CLUSTER_ROLE_BINDING = f"crb-{ADMIN_SUFFIX}"

# -- Namespaces --
DEFAULT_NAMESPACE = "default"
DEFAULT_SERVICE_ACCOUNT = "default"

# -- Node conditions --
CONDITION_READY = "Ready"
PRESSURE_CONDITIONS = ("DiskPressure", "MemoryPressure", "NetworkUnavailable", "PIDPressure")
STATUS_TRUE = "True"
STATUS_FALSE = "False"

# -- Cluster defaults --
DEFAULT_SERVERS = 1
DEFAULT_AGENTS = 0
DEFAULT_CLUSTER_TIMEOUT_SECONDS = 60
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10
K3D_COMMAND_TIMEOUT_SECONDS = 120
DEFAULT_REGISTRY_HOST_PORT = "random"
DEFAULT_REGISTRY_PROXY_URL = "https://registry-1.docker.io"

# -- Readiness --
READINESS_MAX_STEPS = 20
READINESS_INTERVAL_SECONDS = 0.5
READINESS_JITTER = 0.1
