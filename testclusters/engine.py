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

"""Provisioning engine interface and its k3d implementation."""

from __future__ import annotations

import socket
import tempfile
from pathlib import Path
from typing import Any, Protocol

import sh
import yaml

from testclusters import logger
from testclusters.config import ClusterSpec
from testclusters.constants import K3D_COMMAND_TIMEOUT_SECONDS, K3D_CONFIG_API_VERSION, K3D_CONFIG_KIND
from testclusters.errors import CredentialRetrievalError, ProvisioningError, TerminationError

# Slack on top of the cluster timeout before the k3d process itself is killed.
K3D_PROCESS_TIMEOUT_SLACK_SECONDS = 60


class ProvisioningEngine(Protocol):
    """Realizes cluster specs as running containers."""

    def create_cluster(self, spec: ClusterSpec) -> None:
        ...

    def get_kubeconfig(self, cluster_name: str, timeout: float | None = None) -> dict:
        ...

    def delete_cluster(self, cluster_name: str, timeout: float | None = None) -> None:
        ...


def pick_free_port(host: str = "127.0.0.1") -> int:
    """Ask the OS for a currently free TCP port.

    The port is released before k3d binds it, so another process may grab it
    in between. Provisioning then fails with "port is already allocated".
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return sock.getsockname()[1]


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Raises:
        ProvisioningError: If the command is not found.
    """
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise ProvisioningError(f"Required command '{cmd}' not found. Please install it first.") from err


def render_simple_config(spec: ClusterSpec) -> dict[str, Any]:
    """Render ``spec`` as a k3d ``Simple`` config document.

    Args:
        spec: Declarative cluster spec.

    Returns:
        The config as a dictionary ready for YAML serialization.
    """
    config: dict[str, Any] = {
        "apiVersion": K3D_CONFIG_API_VERSION,
        "kind": K3D_CONFIG_KIND,
        "metadata": {"name": spec.name},
        "image": spec.image,
        "servers": spec.servers,
        "agents": spec.agents,
        "kubeAPI": {"hostPort": str(spec.api_host_port)},
        "options": {
            "k3d": {"wait": spec.wait, "timeout": f"{spec.timeout_seconds}s"},
            "k3s": {
                "extraArgs": [
                    {"arg": k3s_arg.arg, "nodeFilters": list(k3s_arg.node_filters)}
                    for k3s_arg in spec.k3s_args
                ],
            },
        },
    }

    registries: dict[str, Any] = {}
    if spec.registry.create:
        registries["create"] = {
            "hostPort": spec.registry.host_port,
            "proxy": {"remoteURL": spec.registry.proxy_remote_url},
        }
    if spec.registry.config:
        registries["config"] = spec.registry.config
    if registries:
        config["registries"] = registries
    return config


def _stderr_of(err: sh.ErrorReturnCode) -> str:
    return err.stderr.decode(errors="replace").strip()


class K3dEngine:
    """Provisioning engine driving the ``k3d`` binary through ``sh``.

    Args:
        k3d: Callable running k3d with the given arguments. Defaults to
            ``sh.k3d``, resolved on first use.
    """

    def __init__(self, k3d=None) -> None:
        self._k3d = k3d

    def _run(self, *args: str, **kwargs) -> str:
        k3d = self._k3d or sh.Command("k3d")
        return str(k3d(*args, **kwargs))

    def create_cluster(self, spec: ClusterSpec) -> None:
        """Write the rendered spec to a temp file and run ``k3d cluster create``.

        Raises:
            ProvisioningError: If k3d fails or times out.
        """
        document = yaml.safe_dump(render_simple_config(spec), default_flow_style=False)
        logger.debug("===== used cluster config =====\n%s===== =====", document)

        tmp = tempfile.NamedTemporaryFile(delete=False, suffix=".yaml", prefix="k3d-")
        try:
            tmp.write(document.encode())
            tmp.flush()
            tmp.close()
            self._run(
                "cluster", "create", "--config", tmp.name,
                _timeout=spec.timeout_seconds + K3D_PROCESS_TIMEOUT_SLACK_SECONDS,
            )
        except sh.ErrorReturnCode as err:
            raise ProvisioningError(f"k3d failed to create cluster '{spec.name}': {_stderr_of(err)}") from err
        except sh.TimeoutException as err:
            raise ProvisioningError(f"k3d timed out creating cluster '{spec.name}'") from err
        except sh.CommandNotFound as err:
            raise ProvisioningError("k3d not found on PATH") from err
        finally:
            Path(tmp.name).unlink(missing_ok=True)

    def get_kubeconfig(self, cluster_name: str, timeout: float | None = None) -> dict:
        """Fetch and parse the cluster's kubeconfig.

        Args:
            cluster_name: Name of the cluster.
            timeout: Seconds k3d may take, defaults to ``K3D_COMMAND_TIMEOUT_SECONDS``.

        Raises:
            CredentialRetrievalError: If k3d fails, times out or returns no usable config.
        """
        try:
            output = self._run("kubeconfig", "get", cluster_name, _timeout=timeout or K3D_COMMAND_TIMEOUT_SECONDS)
        except sh.ErrorReturnCode as err:
            raise CredentialRetrievalError(
                f"k3d failed to get kubeconfig for '{cluster_name}': {_stderr_of(err)}"
            ) from err
        except sh.TimeoutException as err:
            raise CredentialRetrievalError(f"k3d timed out getting kubeconfig for '{cluster_name}'") from err

        try:
            kubeconfig = yaml.safe_load(output)
        except yaml.YAMLError as err:
            raise CredentialRetrievalError(f"kubeconfig for '{cluster_name}' is not valid YAML") from err
        if not isinstance(kubeconfig, dict) or not kubeconfig.get("clusters"):
            raise CredentialRetrievalError(f"kubeconfig for '{cluster_name}' contains no cluster")
        return kubeconfig

    def delete_cluster(self, cluster_name: str, timeout: float | None = None) -> None:
        """Run ``k3d cluster delete``.

        Raises:
            TerminationError: If k3d fails or times out.
        """
        try:
            self._run("cluster", "delete", cluster_name, _timeout=timeout or K3D_COMMAND_TIMEOUT_SECONDS)
        except sh.ErrorReturnCode as err:
            raise TerminationError(f"k3d failed to delete cluster '{cluster_name}': {_stderr_of(err)}") from err
        except sh.TimeoutException as err:
            raise TerminationError(f"k3d timed out deleting cluster '{cluster_name}'") from err
