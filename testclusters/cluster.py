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

"""Cluster lifecycle: create, bootstrap, verify, and terminate k3d clusters."""

from __future__ import annotations

import os
import random
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path

import yaml
from kubernetes.client import (
    RbacV1Subject,
    V1ClusterRole,
    V1ClusterRoleBinding,
    V1ObjectMeta,
    V1PolicyRule,
    V1RoleRef,
    V1ServiceAccount,
)

from testclusters import console, logger
from testclusters.access import AccessContext, access_context_from_kubeconfig
from testclusters.applier import YamlApplier
from testclusters.config import ClusterOpts, ClusterSpec, K3sArg, RegistrySpec
from testclusters.constants import (
    ADMIN_CLUSTER_ROLE,
    ADMIN_CLUSTER_ROLE_BINDING,
    ADMIN_SERVICE_ACCOUNT,
    APP_NAME,
    CREATOR_LABEL,
    DEFAULT_NAMESPACE,
    DEFAULT_SERVICE_ACCOUNT,
    EVICTION_HARD_ARG,
    PORT_ALREADY_ALLOCATED,
    SERVER_NODE_FILTER,
)
from testclusters.engine import K3dEngine, ProvisioningEngine, pick_free_port
from testclusters.errors import (
    AccessBootstrapError,
    ClusterError,
    ClusterNotInitializedError,
    CredentialRetrievalError,
    ManifestApplyError,
    NodeUnhealthyError,
    ProvisioningError,
    ReadinessError,
    TerminationError,
)
from testclusters.health import check_condition, fetch_node_snapshot
from testclusters.lookout import Lookout
from testclusters.naming import generate_cluster_name, validate_cluster_name_prefix
from testclusters.readiness import RetryPolicy, is_transient_api_error, wait_until

RBAC_API_GROUP = "rbac.authorization.k8s.io"


class ClusterState(str, Enum):
    """Steps of a cluster creation, in order."""

    UNCREATED = "uncreated"
    PROVISIONING = "provisioning"
    CREDENTIALS_FETCHED = "credentials-fetched"
    ACCESS_BOOTSTRAPPED = "access-bootstrapped"
    AWAITING_READINESS = "awaiting-readiness"
    HEALTH_VERIFIED = "health-verified"
    FAILED_ROLLBACK = "failed-rollback"


@contextmanager
def _step(error_cls: type[ClusterError], message: str) -> Iterator[None]:
    """Wrap foreign errors raised inside the block into ``error_cls``."""
    try:
        yield
    except ClusterError:
        raise
    except Exception as err:
        raise error_cls(f"{message}: {err}") from err


# ============================================================================
# Cluster handle
# ============================================================================

class K3dCluster:
    """A running, fully initialized test cluster.

    Only :meth:`ClusterCoordinator.create` builds these. Call
    :meth:`terminate` exactly once, typically from test teardown.
    """

    def __init__(
        self,
        spec: ClusterSpec,
        kubeconfig: dict,
        access: AccessContext,
        admin_service_account: str,
        engine: ProvisioningEngine,
    ) -> None:
        self.spec = spec
        self.kubeconfig = kubeconfig
        self.admin_service_account = admin_service_account
        self.state = ClusterState.HEALTH_VERIFIED
        self._access: AccessContext | None = access
        self._engine = engine

    @property
    def cluster_name(self) -> str:
        return self.spec.name

    def __repr__(self) -> str:
        return f"K3dCluster(cluster_name={self.cluster_name!r}, api_port={self.spec.api_host_port})"

    def __enter__(self) -> K3dCluster:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.terminate()

    def client_access(self) -> AccessContext:
        """Return the API access context.

        Raises:
            ClusterNotInitializedError: If the cluster was already terminated.
        """
        if self._access is None:
            raise ClusterNotInitializedError(f"cluster '{self.cluster_name}' has no API access")
        return self._access

    def lookout(self) -> Lookout:
        """Start resource queries against this cluster."""
        return Lookout(self.client_access().core_v1)

    def ctl_kube(self, field_manager: str) -> YamlApplier:
        """Return a manifest applier recording ``field_manager`` as owner.

        Raises:
            ManifestApplyError: If the API discovery for the applier fails.
        """
        api_client = self.client_access().api_client
        with _step(ManifestApplyError, "ctlkube call failed"):
            return YamlApplier(api_client, field_manager, DEFAULT_NAMESPACE)

    def write_kubeconfig(self, directory: str | Path) -> Path:
        """Write the kubeconfig into ``directory`` for manual debugging.

        Returns:
            Path of the written file.
        """
        path = Path(directory) / "kubeconfig"
        # 0600 from creation; the chmod covers a file that already existed.
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(yaml.safe_dump(self.kubeconfig, default_flow_style=False))
        path.chmod(0o600)
        console.print(f"[yellow]\u2139\ufe0f  Writing temporary kubeconfig to {path}[/yellow]")
        console.print(f"[yellow]   example: KUBECONFIG={path} kubectl get nodes[/yellow]")
        return path

    def terminate(self, timeout: float | None = None) -> None:
        """Delete the cluster and its containers.

        Not idempotent; calling it twice is up to the engine.

        Args:
            timeout: Seconds the engine may take, defaults to the engine's own bound.

        Raises:
            TerminationError: If the engine fails to delete the cluster.
        """
        logger.debug("Terminating cluster %s", self.cluster_name)
        try:
            with _step(TerminationError, f"failed to terminate cluster '{self.cluster_name}'"):
                self._engine.delete_cluster(self.cluster_name, timeout=timeout)
        finally:
            if self._access is not None:
                self._access.close()
                self._access = None
        console.print(f"[green]\u2705 Cluster '{self.cluster_name}' terminated[/green]")


# ============================================================================
# Coordinator
# ============================================================================

class ClusterCoordinator:
    """Turns the multi-step provisioning into one all-or-nothing call.

    Args:
        engine: Provisioning engine, defaults to :class:`K3dEngine`.
        access_factory: Builds an :class:`AccessContext` from a kubeconfig.
        rng: Random source for cluster names; seed it for reproducible names.
        port_allocator: Returns a free host port for the Kubernetes API.
        sleep: Sleep function used between readiness attempts.
    """

    def __init__(
        self,
        engine: ProvisioningEngine | None = None,
        access_factory: Callable[[dict], AccessContext] | None = None,
        rng: random.Random | None = None,
        port_allocator: Callable[[], int] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.engine = engine or K3dEngine()
        self._access_factory = access_factory or access_context_from_kubeconfig
        self._rng = rng or random.Random()
        self._port_allocator = port_allocator or pick_free_port
        self._sleep = sleep or time.sleep

    def build_spec(self, cluster_name: str, opts: ClusterOpts) -> ClusterSpec:
        """Build the declarative spec for ``cluster_name``.

        Raises:
            ProvisioningError: If no free host port could be found.
        """
        try:
            api_port = self._port_allocator()
        except OSError as err:
            raise ProvisioningError("could not find free port for the Kubernetes API") from err

        k3s_args: tuple[K3sArg, ...] = ()
        if opts.node_condition_eviction_hard_arg:
            k3s_args = (K3sArg(EVICTION_HARD_ARG + opts.node_condition_eviction_hard_arg, (SERVER_NODE_FILTER,)),)

        return ClusterSpec(
            name=cluster_name,
            image=opts.k3s_image,
            servers=opts.servers,
            agents=opts.agents,
            api_host_port=api_port,
            wait=True,
            timeout_seconds=opts.cluster_timeout_seconds,
            k3s_args=k3s_args,
            registry=RegistrySpec(
                create=opts.create_registry,
                host_port=opts.registry_host_port,
                proxy_remote_url=opts.registry_proxy_url,
                config=opts.registry_config,
            ),
        )

    def create(self, opts: ClusterOpts | None = None) -> K3dCluster:
        """Create a cluster and return it only once it is usable.

        Treat any raised error as fatal for the test; a retry needs a new
        call, never the same handle. Every API request is bounded by
        ``opts.request_timeout_seconds`` and every k3d call by
        ``opts.cluster_timeout_seconds``. Interrupts such as
        ``KeyboardInterrupt`` roll the cluster back as well.

        Raises:
            InvalidNameError: If the name prefix is invalid (nothing was created).
            ProvisioningError: If k3d failed, including a leaked API port.
            CredentialRetrievalError: If no API client could be built.
            AccessBootstrapError: If the admin RBAC objects could not be created.
            ReadinessTimeoutError: If the control plane never became ready in time.
            ReadinessError: If the readiness check failed with a non-transient error.
            NodeUnhealthyError: If a node reports an unhealthy condition.
            UnsupportedConditionError: If a node reports an unknown condition.
        """
        opts = opts or ClusterOpts()

        prefix = validate_cluster_name_prefix(opts.cluster_name_prefix, self._rng)
        cluster_name = generate_cluster_name(prefix, self._rng)
        spec = self.build_spec(cluster_name, opts)
        console.print(f"[yellow]\u2139\ufe0f  Creating cluster '{cluster_name}'...[/yellow]")

        state = ClusterState.UNCREATED
        access: AccessContext | None = None

        def advance(new_state: ClusterState) -> None:
            nonlocal state
            logger.debug("Cluster %s: %s -> %s", cluster_name, state.value, new_state.value)
            state = new_state

        try:
            advance(ClusterState.PROVISIONING)
            self._provision(spec)

            kubeconfig = self._fetch_credentials(cluster_name, opts.cluster_timeout_seconds)
            access = self._connect(kubeconfig)
            advance(ClusterState.CREDENTIALS_FETCHED)

            admin_sa = self._bootstrap_access(access, opts.request_timeout_seconds)
            advance(ClusterState.ACCESS_BOOTSTRAPPED)

            advance(ClusterState.AWAITING_READINESS)
            self._await_readiness(access, opts.readiness_policy(), opts.request_timeout_seconds)

            self._verify_health(access, opts)
            advance(ClusterState.HEALTH_VERIFIED)
        except BaseException as err:
            failed_in = state
            advance(ClusterState.FAILED_ROLLBACK)
            logger.error("Creating cluster %s failed while %s: %s", cluster_name, failed_in.value, err)
            self._rollback(cluster_name, access, opts.cluster_timeout_seconds)
            raise

        console.print(f"[green]\u2705 Cluster '{cluster_name}' is ready[/green]")
        return K3dCluster(spec, kubeconfig, access, admin_sa, self.engine)

    def _provision(self, spec: ClusterSpec) -> None:
        try:
            self.engine.create_cluster(spec)
        except Exception as err:
            if PORT_ALREADY_ALLOCATED in str(err):
                raise ProvisioningError(
                    f"port is already allocated for cluster '{spec.name}'. Was another test cluster not "
                    "cleaned up properly? 'testclusters delete leaked' removes leftover clusters."
                ) from err
            if isinstance(err, ProvisioningError):
                raise
            raise ProvisioningError(f"failed to provision cluster '{spec.name}': {err}") from err

    def _fetch_credentials(self, cluster_name: str, timeout: float) -> dict:
        with _step(CredentialRetrievalError, f"failed to get kubeconfig for '{cluster_name}'"):
            kubeconfig = self.engine.get_kubeconfig(cluster_name, timeout=timeout)
        logger.debug("Retrieved kubeconfig for cluster %s", cluster_name)
        return kubeconfig

    def _connect(self, kubeconfig: dict) -> AccessContext:
        with _step(CredentialRetrievalError, "failed to initialize API client"):
            return self._access_factory(kubeconfig)

    def _bootstrap_access(self, access: AccessContext, timeout: float | None = None) -> str:
        """Create an admin service account bound to a catch-all cluster role.

        Full rights on everything keep tests simple; do not copy this into
        anything long-lived.
        """
        labels = {CREATOR_LABEL: APP_NAME}
        service_account = V1ServiceAccount(
            metadata=V1ObjectMeta(name=ADMIN_SERVICE_ACCOUNT, namespace=DEFAULT_NAMESPACE, labels=labels),
        )
        cluster_role = V1ClusterRole(
            metadata=V1ObjectMeta(name=ADMIN_CLUSTER_ROLE, labels=labels),
            rules=[V1PolicyRule(verbs=["*"], api_groups=["*"], resources=["*"])],
        )
        binding = V1ClusterRoleBinding(
            metadata=V1ObjectMeta(name=ADMIN_CLUSTER_ROLE_BINDING, labels=labels),
            role_ref=V1RoleRef(api_group=RBAC_API_GROUP, kind="ClusterRole", name=ADMIN_CLUSTER_ROLE),
            subjects=[RbacV1Subject(kind="ServiceAccount", name=ADMIN_SERVICE_ACCOUNT, namespace=DEFAULT_NAMESPACE)],
        )

        with _step(AccessBootstrapError, "failed to create default RBAC for SA"):
            access.core_v1.create_namespaced_service_account(DEFAULT_NAMESPACE, service_account, _request_timeout=timeout)
            access.rbac_v1.create_cluster_role(cluster_role, _request_timeout=timeout)
            access.rbac_v1.create_cluster_role_binding(binding, _request_timeout=timeout)
        return ADMIN_SERVICE_ACCOUNT

    def _await_readiness(self, access: AccessContext, policy: RetryPolicy, timeout: float | None = None) -> None:
        def default_sa_exists() -> None:
            access.core_v1.read_namespaced_service_account(
                DEFAULT_SERVICE_ACCOUNT, DEFAULT_NAMESPACE, _request_timeout=timeout
            )
            logger.debug("Found default SA")

        with _step(ReadinessError, "failed to wait for default service account"):
            wait_until(default_sa_exists, policy, is_retriable=is_transient_api_error, sleep=self._sleep)

    def _verify_health(self, access: AccessContext, opts: ClusterOpts) -> None:
        if opts.skip_node_health_check:
            logger.debug("Skipping health check of all nodes")
            return

        with _step(NodeUnhealthyError, "failed to check node health"):
            snapshot = fetch_node_snapshot(access.core_v1, timeout=opts.request_timeout_seconds)
            check_condition(snapshot)
        logger.debug("Nodes look healthy: %s", snapshot)

    def _rollback(self, cluster_name: str, access: AccessContext | None, timeout: float | None = None) -> None:
        """Best-effort removal of whatever was provisioned. Never raises."""
        try:
            self.engine.delete_cluster(cluster_name, timeout=timeout)
            logger.info("Rolled back cluster %s", cluster_name)
        except Exception as err:
            logger.error(
                "Another error '%s' occurred while terminating cluster %s after the original error "
                "(you may want to clean up the container landscape)",
                err, cluster_name,
            )
        finally:
            if access is not None:
                access.close()
