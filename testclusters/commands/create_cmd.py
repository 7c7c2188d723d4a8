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

"""Create subcommands (cluster)."""

from __future__ import annotations

from pathlib import Path

import typer

from testclusters import console
from testclusters.cluster import ClusterCoordinator
from testclusters.config import ClusterOpts, LogLevel
from testclusters.engine import require_command

app = typer.Typer(help="Create clusters.")


@app.command("cluster")
def cluster(
    prefix: str | None = typer.Option(None, "--prefix", help="Cluster name prefix (after 'tc-')"),
    agents: int | None = typer.Option(None, "--agents", help="Number of agent nodes"),
    image: str | None = typer.Option(None, "--image", help="K3s image"),
    skip_health_check: bool = typer.Option(False, "--skip-health-check", help="Skip the node health check"),
    debug: bool = typer.Option(False, "--debug", help="Log every lifecycle step"),
    kubeconfig_dir: Path | None = typer.Option(None, "--kubeconfig-dir", help="Write the kubeconfig here"),
) -> None:
    """Create a cluster and leave it running. Delete it with 'delete cluster'."""
    require_command("k3d")

    opts = ClusterOpts()
    overrides: dict = {}
    if prefix is not None:
        overrides["cluster_name_prefix"] = prefix
    if agents is not None:
        overrides["agents"] = agents
    if image is not None:
        overrides["k3s_image"] = image
    if skip_health_check:
        overrides["skip_node_health_check"] = True
    if debug:
        overrides["log_level"] = LogLevel.DEBUG
    if overrides:
        opts = opts.model_copy(update=overrides)
    opts.apply_log_level()

    created = ClusterCoordinator().create(opts)
    console.print(f"[green]  \u2713 Name: {created.cluster_name}[/green]")
    console.print(f"[green]  \u2713 API port: {created.spec.api_host_port}[/green]")
    if kubeconfig_dir is not None:
        created.write_kubeconfig(kubeconfig_dir)
