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

"""Tests for building API access from a kubeconfig."""

from unittest.mock import MagicMock, patch

import pytest
from kubernetes.client import CoreV1Api, RbacAuthorizationV1Api
from kubernetes.config.config_exception import ConfigException

from testclusters.access import access_context_from_kubeconfig
from testclusters.errors import CredentialRetrievalError

from .conftest import KUBECONFIG


class TestAccessContextFromKubeconfig:
    """Tests for access_context_from_kubeconfig."""

    def test_builds_typed_apis_on_one_client(self):
        api_client = MagicMock()
        with patch("testclusters.access.config.new_client_from_config_dict", return_value=api_client) as factory:
            access = access_context_from_kubeconfig(KUBECONFIG)

        factory.assert_called_once_with(config_dict=KUBECONFIG, context=None)
        assert access.api_client is api_client
        assert isinstance(access.core_v1, CoreV1Api)
        assert isinstance(access.rbac_v1, RbacAuthorizationV1Api)
        assert access.core_v1.api_client is api_client

    def test_close_releases_client(self):
        api_client = MagicMock()
        with patch("testclusters.access.config.new_client_from_config_dict", return_value=api_client):
            access_context_from_kubeconfig(KUBECONFIG).close()

        api_client.close.assert_called_once()

    def test_invalid_kubeconfig_raises(self):
        with patch(
            "testclusters.access.config.new_client_from_config_dict",
            side_effect=ConfigException("Invalid kube-config file"),
        ):
            with pytest.raises(CredentialRetrievalError, match="Invalid kube-config file") as exc_info:
                access_context_from_kubeconfig({})

        assert isinstance(exc_info.value.__cause__, ConfigException)

    def test_real_loader_rejects_missing_context(self):
        with pytest.raises(CredentialRetrievalError):
            access_context_from_kubeconfig(KUBECONFIG, context="does-not-exist")
