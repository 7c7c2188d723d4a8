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

"""Delete subcommands (cluster, leaked)."""

from __future__ import annotations

import typer

from testclusters import console
from testclusters.engine import K3dEngine
from testclusters.errors import TerminationError
from testclusters.leaks import find_leaked_clusters

app = typer.Typer(help="Delete clusters.")


@app.command("cluster")
def cluster(name: str = typer.Argument(..., help="Cluster name, e.g. tc-abc123-x1y2z3w4")) -> None:
    """Delete a single cluster by name."""
    console.print(f"[yellow]\u2139\ufe0f  Deleting cluster '{name}'...[/yellow]")
    K3dEngine().delete_cluster(name)
    console.print(f"[green]\u2705 Cluster '{name}' deleted[/green]")


@app.command("leaked")
def leaked() -> None:
    """Delete every cluster with the testclusters name marker."""
    names = find_leaked_clusters()
    if not names:
        console.print("[green]\u2705 No leaked clusters found[/green]")
        return

    engine = K3dEngine()
    failed: list[str] = []
    for name in names:
        try:
            engine.delete_cluster(name)
            console.print(f"[green]\u2713 {name}[/green]")
        except TerminationError as err:
            console.print(f"[red]\u2717 {name} - {err}[/red]")
            failed.append(name)

    if failed:
        raise typer.Exit(code=1)
    console.print(f"[green]\u2705 Deleted {len(names)} leaked clusters[/green]")
