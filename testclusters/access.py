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

"""API access context built from a cluster's kubeconfig."""

from __future__ import annotations

from dataclasses import dataclass

from kubernetes import config
from kubernetes.client import ApiClient, CoreV1Api, RbacAuthorizationV1Api
from kubernetes.config.config_exception import ConfigException

from testclusters.errors import CredentialRetrievalError


@dataclass(frozen=True)
class AccessContext:
    """Typed API accessors bound to one cluster. Immutable once built."""

    api_client: ApiClient
    core_v1: CoreV1Api
    rbac_v1: RbacAuthorizationV1Api

    def close(self) -> None:
        self.api_client.close()


def access_context_from_kubeconfig(kubeconfig: dict, context: str | None = None) -> AccessContext:
    """Build an isolated API client from a kubeconfig dictionary.

    The client does not touch the SDK's global default configuration, so
    several clusters can be used side by side in one process.

    Raises:
        CredentialRetrievalError: If the kubeconfig cannot be loaded.
    """
    try:
        api_client = config.new_client_from_config_dict(config_dict=kubeconfig, context=context)
    except (ConfigException, KeyError, TypeError, ValueError) as err:
        raise CredentialRetrievalError(f"failed to create API client from kubeconfig: {err}") from err
    return AccessContext(
        api_client=api_client,
        core_v1=CoreV1Api(api_client),
        rbac_v1=RbacAuthorizationV1Api(api_client),
    )
