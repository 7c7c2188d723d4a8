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

"""List subcommands (leaked)."""

from __future__ import annotations

import typer

from testclusters import console
from testclusters.leaks import find_leaked_clusters

app = typer.Typer(help="List clusters.")


@app.command("leaked")
def leaked() -> None:
    """List clusters with the testclusters name marker still running."""
    names = find_leaked_clusters()
    if not names:
        console.print("[green]\u2705 No leaked clusters found[/green]")
        return
    console.print(f"[yellow]\u26a0\ufe0f  {len(names)} leaked clusters:[/yellow]")
    for name in names:
        console.print(f"   {name}")
