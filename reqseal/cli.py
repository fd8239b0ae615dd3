# Copyright 2025 ReqSeal Project Contributors
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
"""
ReqSeal command line interface.
Generate, decode and verify keys against a lookup table.
"""

import logging
import time

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from .config import ReqSealConfig
from .exceptions import ReqSealError, TokenRejectedError
from .seal import ReqSeal

app = typer.Typer(name="reqseal", help="ReqSeal - timestamp keys against request replay", no_args_is_help=True)
console = Console()


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level)
    logging.getLogger("reqseal").setLevel(level)


def _load_seal(ctx: typer.Context) -> ReqSeal:
    opts = ctx.obj
    try:
        if opts["config_file"]:
            config = ReqSealConfig.from_file(opts["config_file"])
        else:
            config = ReqSealConfig(matrix_file=opts["matrix_file"])
        if opts["separator"]:
            config.update(separator=opts["separator"])
        if opts["log_level"]:
            config.update(log_level=opts["log_level"])
        config.update(replay_cache_enabled=False)
        _configure_logging(config.log_level)
        return ReqSeal.from_config(config)
    except ReqSealError as e:
        rprint(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(2) from e


@app.command()
def generate(
    ctx: typer.Context,
    count: int = typer.Option(1, "--count", "-n", help="Number of keys to generate"),
    timestamp: int | None = typer.Option(None, "--timestamp", "-t", help="Encode this instant instead of now (ms)"),
):
    """Generate key(s) for the current time"""
    seal = _load_seal(ctx)
    for _ in range(count):
        typer.echo(seal.generate_key(now=timestamp))


@app.command()
def decode(ctx: typer.Context, key: str = typer.Argument(..., help="Key to decode")):
    """Decode a key and print its embedded timestamp"""
    seal = _load_seal(ctx)
    try:
        timestamp = seal.decode_key(key)
    except ReqSealError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    typer.echo(timestamp)


@app.command()
def verify(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key to verify"),
    skew_ms: int | None = typer.Option(None, "--skew-ms", help="Allowed clock skew in milliseconds"),
    now: int | None = typer.Option(None, "--now", help="Verify at this instant (ms) instead of now"),
):
    """Verify a key against the skew window"""
    seal = _load_seal(ctx)
    if skew_ms is not None:
        seal.verifier.allowed_skew_ms = skew_ms
    try:
        result = seal.verify_key(key, now=now)
    except TokenRejectedError as e:
        rprint(f"[red]Rejected ({e.reason.value}):[/red] {e.message}")
        raise typer.Exit(1) from e
    rprint(f"[green]Valid[/green] timestamp={result.timestamp} drift={result.drift_ms}ms")


@app.command("check-table")
def check_table(ctx: typer.Context):
    """Validate the lookup table and show its shape"""
    seal = _load_seal(ctx)
    lookup = seal.table
    separator = seal.codec.separator

    table = Table(title="Lookup table")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Columns (N)", str(lookup.columns))
    table.add_row("Symbol size", str(lookup.base_size))
    table.add_row("Separator", repr(separator))
    console.print(table)

    problems = []
    duplicates = lookup.duplicates()
    if duplicates:
        problems.append(f"symbols used more than once: {', '.join(duplicates)}")
    clashing = sorted(s for s in lookup.symbols() if separator in s or s in separator)
    if clashing:
        problems.append(f"symbols overlapping the separator: {', '.join(clashing)}")

    if problems:
        for problem in problems:
            rprint(f"[yellow]Warning:[/yellow] {problem}")
        raise typer.Exit(1)
    rprint("[green]Table OK[/green]")


@app.command()
def benchmark(
    ctx: typer.Context,
    iterations: int = typer.Option(100_000, "--iterations", "-i", help="Round trips to run"),
):
    """Measure generate + decode round trips"""
    seal = _load_seal(ctx)
    start = time.perf_counter()
    for _ in range(iterations):
        key = seal.generate_key()
        seal.decode_key(key)
    total_ms = (time.perf_counter() - start) * 1000
    per_op = total_ms / max(1, iterations)
    rprint(f"Total: {total_ms:.2f} ms for {iterations} iterations")
    rprint(f"Per op: {per_op:.6f} ms (~{iterations / max(total_ms / 1000, 1e-9):.0f} ops/sec)")


@app.callback()
def main_callback(
    ctx: typer.Context,
    matrix_file: str | None = typer.Option(None, "--matrix", "-m", help="Lookup table file (YAML or JSON)"),
    config_file: str | None = typer.Option(None, "--config", "-c", help="Path to configuration file"),
    separator: str | None = typer.Option(None, "--separator", "-s", help="Sauce separator"),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level (overrides the configuration)"),
):
    """ReqSeal - timestamp keys against request replay"""
    ctx.ensure_object(dict)
    ctx.obj.update(
        {
            "matrix_file": matrix_file,
            "config_file": config_file,
            "separator": separator,
            "log_level": log_level,
        }
    )


def main():
    app()


if __name__ == "__main__":
    main()
