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

"""
cli.py - Manage testclusters k3d clusters outside of tests.

Subcommands:
    create     Create a cluster and leave it running (cluster)
    delete     Delete clusters (cluster, leaked)
    list       List clusters (leaked)

Examples:
    # Create a debugging cluster and write its kubeconfig
    testclusters create cluster --prefix debug --kubeconfig-dir /tmp

    # Find clusters left behind by interrupted test runs
    testclusters list leaked

    # Remove them
    testclusters delete leaked
"""

from __future__ import annotations

import logging
import sys

import typer

from testclusters import console
from testclusters.commands import create_cmd, delete_cmd, list_cmd

app = typer.Typer(
    help="Manage disposable k3d clusters created by testclusters.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.add_typer(create_cmd.app, name="create")
app.add_typer(delete_cmd.app, name="delete")
app.add_typer(list_cmd.app, name="list")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
