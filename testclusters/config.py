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

"""Configuration classes and the declarative cluster spec."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from testclusters.constants import (
    DEFAULT_AGENTS,
    DEFAULT_CLUSTER_TIMEOUT_SECONDS,
    DEFAULT_K3S_IMAGE,
    DEFAULT_REGISTRY_HOST_PORT,
    DEFAULT_REGISTRY_PROXY_URL,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SERVERS,
    READINESS_INTERVAL_SECONDS,
    READINESS_JITTER,
    READINESS_MAX_STEPS,
)
from testclusters.readiness import RetryPolicy


class LogLevel(str, Enum):
    """Verbosity of testclusters' own log messages (k3d keeps its own)."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    DEBUG = "debug"

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.name)


# ============================================================================
# Configuration classes
# ============================================================================

class ClusterOpts(BaseSettings):
    """Cluster creation options, auto-loaded from TESTCLUSTERS_* env vars.

    Attributes:
        cluster_name_prefix: Caller part of the cluster name, appended to the
            ``tc-`` marker. Empty means a random prefix is generated.
        log_level: Verbosity of the testclusters logger.
        node_condition_eviction_hard_arg: Value for the kubelet's
            ``eviction-hard`` argument, empty means unset. See
            :func:`testclusters.health.kubelet_eviction_fs_by_percentage`.
        skip_node_health_check: Whether to skip the node condition check.
        k3s_image: K3s image reference used for all nodes.
        servers: Number of k3s server nodes.
        agents: Number of k3s agent nodes.
        cluster_timeout_seconds: How long k3d waits for the cluster; also bounds
            the other k3d calls made while creating it.
        request_timeout_seconds: Per-request timeout of every Kubernetes API
            call made while creating the cluster.
        create_registry: Whether to create a pull-through registry.
        registry_host_port: Host port of that registry, or ``random``.
        registry_proxy_url: Remote the registry proxies to.
        registry_config: Optional registries.yaml content passed to k3s.
        readiness_steps: Attempts while waiting for the control plane.
        readiness_interval_seconds: Pause between two attempts.
        readiness_jitter: Random extra pause as a fraction of the interval.
    """

    model_config = SettingsConfigDict(env_prefix="TESTCLUSTERS_", extra="ignore")

    cluster_name_prefix: str = ""
    log_level: LogLevel = LogLevel.WARNING
    node_condition_eviction_hard_arg: str = ""
    skip_node_health_check: bool = False
    k3s_image: str = DEFAULT_K3S_IMAGE
    servers: int = Field(default=DEFAULT_SERVERS, ge=1, le=9)
    agents: int = Field(default=DEFAULT_AGENTS, ge=0, le=9)
    cluster_timeout_seconds: int = Field(default=DEFAULT_CLUSTER_TIMEOUT_SECONDS, ge=1)
    request_timeout_seconds: float = Field(default=DEFAULT_REQUEST_TIMEOUT_SECONDS, gt=0)
    create_registry: bool = True
    registry_host_port: str = Field(default=DEFAULT_REGISTRY_HOST_PORT, pattern=r"^(random|\d{1,5})$")
    registry_proxy_url: str = DEFAULT_REGISTRY_PROXY_URL
    registry_config: str = ""
    readiness_steps: int = Field(default=READINESS_MAX_STEPS, ge=1, le=1000)
    readiness_interval_seconds: float = Field(default=READINESS_INTERVAL_SECONDS, gt=0)
    readiness_jitter: float = Field(default=READINESS_JITTER, ge=0, le=1)

    def apply_log_level(self) -> int:
        """Set the testclusters logger to ``log_level``.

        Returns:
            The previous level, for restoring it later.
        """
        package_logger = logging.getLogger("testclusters")
        previous = package_logger.level
        package_logger.setLevel(self.log_level.logging_level)
        return previous

    def readiness_policy(self) -> RetryPolicy:
        """Build the retry policy used while waiting for the control plane."""
        return RetryPolicy(
            steps=self.readiness_steps,
            interval=self.readiness_interval_seconds,
            jitter=self.readiness_jitter,
        )


# ============================================================================
# Cluster spec
# ============================================================================

@dataclass(frozen=True)
class K3sArg:
    """A k3s argument and the nodes it applies to."""

    arg: str
    node_filters: tuple[str, ...]


@dataclass(frozen=True)
class RegistrySpec:
    """Pull-through registry created alongside the cluster.

    Attributes:
        create: Whether k3d creates the registry at all.
        host_port: Host port of the registry, or ``random``.
        proxy_remote_url: Upstream registry the proxy serves from.
        config: registries.yaml content handed to k3s, may be empty.
    """

    create: bool = True
    host_port: str = DEFAULT_REGISTRY_HOST_PORT
    proxy_remote_url: str = DEFAULT_REGISTRY_PROXY_URL
    config: str = ""


@dataclass(frozen=True)
class ClusterSpec:
    """Declarative description of a cluster, handed to the provisioning engine.

    Attributes:
        name: Cluster name, already validated.
        image: K3s image reference.
        servers: Number of server nodes.
        agents: Number of agent nodes.
        api_host_port: Host port the Kubernetes API is exposed on.
        wait: Whether the engine waits for the cluster to come up.
        timeout_seconds: How long the engine waits.
        k3s_args: Extra k3s arguments with node filters.
        registry: Registry passthrough settings.
    """

    name: str
    image: str
    servers: int
    agents: int
    api_host_port: int
    wait: bool = True
    timeout_seconds: int = DEFAULT_CLUSTER_TIMEOUT_SECONDS
    k3s_args: tuple[K3sArg, ...] = ()
    registry: RegistrySpec = field(default_factory=RegistrySpec)
