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

"""Server-side apply of YAML manifests."""

from __future__ import annotations

import yaml
from kubernetes.client import ApiClient
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import DynamicApiError, ResourceNotFoundError

from testclusters import logger
from testclusters.constants import DEFAULT_NAMESPACE
from testclusters.errors import ManifestApplyError


class YamlApplier:
    """Applies multi-document YAML manifests like ``kubectl apply --server-side``.

    Args:
        api_client: API client of the target cluster.
        field_manager: Field manager recorded for every applied field.
        namespace: Namespace for namespaced objects that do not name one.
        dynamic_client: Pre-built dynamic client, mostly for tests.
    """

    def __init__(
        self,
        api_client: ApiClient | None,
        field_manager: str,
        namespace: str = DEFAULT_NAMESPACE,
        dynamic_client: DynamicClient | None = None,
    ) -> None:
        self.field_manager = field_manager
        self.namespace = namespace
        self._dynamic = dynamic_client or DynamicClient(api_client)

    def apply(self, manifest: bytes | str) -> list[str]:
        """Apply every document in ``manifest``.

        Returns:
            ``kind/name`` of each applied object, in order.

        Raises:
            ManifestApplyError: If a document is malformed or rejected.
        """
        if isinstance(manifest, bytes):
            manifest = manifest.decode()
        try:
            documents = [doc for doc in yaml.safe_load_all(manifest) if doc]
        except yaml.YAMLError as err:
            raise ManifestApplyError(f"manifest is not valid YAML: {err}") from err
        return [self._apply_document(doc) for doc in documents]

    def _apply_document(self, doc: dict) -> str:
        kind = doc.get("kind")
        api_version = doc.get("apiVersion")
        metadata = doc.get("metadata") or {}
        name = metadata.get("name")
        if not (kind and api_version and name):
            raise ManifestApplyError("manifest document needs apiVersion, kind and metadata.name")

        try:
            resource = self._dynamic.resources.get(api_version=api_version, kind=kind)
            namespace = metadata.get("namespace", self.namespace) if resource.namespaced else None
            self._dynamic.server_side_apply(
                resource,
                body=doc,
                name=name,
                namespace=namespace,
                field_manager=self.field_manager,
                force_conflicts=True,
            )
        except (DynamicApiError, ResourceNotFoundError) as err:
            raise ManifestApplyError(f"failed to apply {kind} '{name}': {err}") from err

        logger.debug("Applied %s/%s as %s", kind, name, self.field_manager)
        return f"{kind}/{name}"
