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

"""Tests for the k3d provisioning engine."""

import socket
from dataclasses import replace
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import sh
import yaml

from testclusters.config import ClusterSpec, K3sArg, RegistrySpec
from testclusters.engine import K3dEngine, pick_free_port, render_simple_config, require_command
from testclusters.errors import CredentialRetrievalError, ProvisioningError, TerminationError

from .conftest import KUBECONFIG


@pytest.fixture
def spec():
    return ClusterSpec(
        name="tc-test-abcd1234",
        image="docker.io/rancher/k3s:v1.28.2-k3s1",
        servers=1,
        agents=2,
        api_host_port=40123,
        timeout_seconds=90,
        k3s_args=(K3sArg("--kubelet-arg=eviction-hard=nodefs.available<10%", ("server:*",)),),
    )


def k3d_error(stderr):
    return sh.ErrorReturnCode_1("k3d cluster", b"", stderr)


class TestRenderSimpleConfig:
    """Tests for render_simple_config."""

    def test_renders_cluster(self, spec):
        config = render_simple_config(spec)

        assert config["apiVersion"] == "k3d.io/v1alpha5"
        assert config["kind"] == "Simple"
        assert config["metadata"] == {"name": "tc-test-abcd1234"}
        assert config["image"] == "docker.io/rancher/k3s:v1.28.2-k3s1"
        assert config["servers"] == 1
        assert config["agents"] == 2
        assert config["kubeAPI"] == {"hostPort": "40123"}
        assert config["options"]["k3d"] == {"wait": True, "timeout": "90s"}
        assert config["options"]["k3s"]["extraArgs"] == [
            {"arg": "--kubelet-arg=eviction-hard=nodefs.available<10%", "nodeFilters": ["server:*"]}
        ]

    def test_renders_registry(self, spec):
        config = render_simple_config(spec)

        assert config["registries"] == {
            "create": {"hostPort": "random", "proxy": {"remoteURL": "https://registry-1.docker.io"}},
        }

    def test_registry_config_without_creation(self, spec):
        registry = RegistrySpec(create=False, config="mirrors: {}\n")
        config = render_simple_config(replace(spec, registry=registry))

        assert config["registries"] == {"config": "mirrors: {}\n"}

    def test_no_registry(self, spec):
        config = render_simple_config(replace(spec, registry=RegistrySpec(create=False)))

        assert "registries" not in config

    def test_is_yaml_serializable(self, spec):
        assert yaml.safe_load(yaml.safe_dump(render_simple_config(spec))) == render_simple_config(spec)


class TestK3dEngine:
    """Tests for K3dEngine with a mocked k3d binary."""

    def test_create_passes_config_file(self, spec):
        seen = {}

        def fake_k3d(*args, **kwargs):
            config_path = Path(args[3])
            seen["args"] = args[:3]
            seen["config"] = yaml.safe_load(config_path.read_text())
            seen["path"] = config_path
            seen["timeout"] = kwargs["_timeout"]
            return ""

        K3dEngine(k3d=fake_k3d).create_cluster(spec)

        assert seen["args"] == ("cluster", "create", "--config")
        assert seen["config"]["metadata"]["name"] == "tc-test-abcd1234"
        assert seen["timeout"] == 150
        assert not seen["path"].exists()

    def test_create_failure_carries_stderr(self, spec):
        k3d = MagicMock(side_effect=k3d_error(b"Bind for 0.0.0.0:40123 failed: port is already allocated"))

        with pytest.raises(ProvisioningError, match="port is already allocated") as exc_info:
            K3dEngine(k3d=k3d).create_cluster(spec)

        assert isinstance(exc_info.value.__cause__, sh.ErrorReturnCode)

    def test_create_timeout(self, spec):
        k3d = MagicMock(side_effect=sh.TimeoutException(-9, "k3d cluster create"))

        with pytest.raises(ProvisioningError, match="timed out"):
            K3dEngine(k3d=k3d).create_cluster(spec)

    def test_get_kubeconfig_parses_yaml(self):
        k3d = MagicMock(return_value=yaml.safe_dump(KUBECONFIG))

        assert K3dEngine(k3d=k3d).get_kubeconfig("tc-test") == KUBECONFIG
        k3d.assert_called_once_with("kubeconfig", "get", "tc-test", _timeout=120)

    @pytest.mark.parametrize("output", ["", "clusters: []\n", "- just\n- a list\n", "key: [unclosed\n"])
    def test_get_kubeconfig_rejects_unusable_output(self, output):
        k3d = MagicMock(return_value=output)

        with pytest.raises(CredentialRetrievalError):
            K3dEngine(k3d=k3d).get_kubeconfig("tc-test")

    def test_get_kubeconfig_failure(self):
        k3d = MagicMock(side_effect=k3d_error(b"No nodes found for given cluster"))

        with pytest.raises(CredentialRetrievalError, match="No nodes found"):
            K3dEngine(k3d=k3d).get_kubeconfig("tc-test")

    def test_delete(self):
        k3d = MagicMock(return_value="")

        K3dEngine(k3d=k3d).delete_cluster("tc-test")

        k3d.assert_called_once_with("cluster", "delete", "tc-test", _timeout=120)

    def test_explicit_timeouts_are_forwarded(self):
        k3d = MagicMock(return_value=yaml.safe_dump(KUBECONFIG))
        engine = K3dEngine(k3d=k3d)

        engine.get_kubeconfig("tc-test", timeout=15)
        engine.delete_cluster("tc-test", timeout=25)

        assert [c.kwargs["_timeout"] for c in k3d.call_args_list] == [15, 25]

    def test_get_kubeconfig_timeout(self):
        k3d = MagicMock(side_effect=sh.TimeoutException(-9, "k3d kubeconfig get"))

        with pytest.raises(CredentialRetrievalError, match="timed out"):
            K3dEngine(k3d=k3d).get_kubeconfig("tc-test")

    def test_delete_timeout(self):
        k3d = MagicMock(side_effect=sh.TimeoutException(-9, "k3d cluster delete"))

        with pytest.raises(TerminationError, match="timed out"):
            K3dEngine(k3d=k3d).delete_cluster("tc-test")

    def test_delete_failure(self):
        k3d = MagicMock(side_effect=k3d_error(b"cannot delete"))

        with pytest.raises(TerminationError, match="cannot delete"):
            K3dEngine(k3d=k3d).delete_cluster("tc-test")


class TestHelpers:
    """Tests for pick_free_port and require_command."""

    def test_pick_free_port_is_bindable(self):
        port = pick_free_port()

        assert 0 < port < 65536
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", port))

    @pytest.fixture
    def mock_sh(self):
        with patch("testclusters.engine.sh") as mocked:
            mocked.ErrorReturnCode = sh.ErrorReturnCode
            yield mocked

    def test_require_command_missing(self, mock_sh):
        mock_sh.which.side_effect = k3d_error(b"")

        with pytest.raises(ProvisioningError, match="Required command 'k3d' not found"):
            require_command("k3d")

    def test_require_command_present(self, mock_sh):
        mock_sh.which.return_value = "/usr/local/bin/k3d"

        require_command("k3d")

        mock_sh.which.assert_called_once_with("k3d")
