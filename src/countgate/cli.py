from __future__ import annotations

import json
import logging
from pathlib import Path

import typer

from .config import (
    ConnectionConfig,
    get_config_path,
    load_config,
    validate_indexes,
    validate_query,
    validate_request_timeout,
    validate_since,
    validate_threshold,
)
from .errors import ConfigError, DecodeError, EncodingError, ThresholdExceeded, TransportError
from .gate import run_gate
from .models import QuerySpec
from .run_log import get_run_log_path

app = typer.Typer(add_completion=False, help="countgate: fail a build on an Elasticsearch count threshold")

config_app = typer.Typer(help="Inspect connection settings")
app.add_typer(config_app, name="config")

EXIT_THRESHOLD = 1
EXIT_CONFIG = 2
EXIT_TRANSPORT = 3


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_path: Path | None) -> ConnectionConfig:
    try:
        return load_config(config_path or get_config_path())
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command("check")
def check_cmd(
    query: str = typer.Option(..., "--query", "-q", help="Lucene query string"),
    comparison: str = typer.Option("gte", "--comparison", help="Fail when count is gte|lte threshold"),
    threshold: int = typer.Option(..., "--threshold", help="Threshold count (>= 0)"),
    since: int = typer.Option(..., "--since", help="Lookback magnitude (>= 1)"),
    units: str = typer.Option("HOURS", "--units", help="MINUTES|HOURS|DAYS"),
    config: Path | None = typer.Option(None, "--config", help="Path to countgate config.json"),
    run_log: Path | None = typer.Option(None, "--run-log", help="Append a JSONL record per run"),
) -> None:
    """Run the count query and fail when the threshold condition is met."""
    cfg = _load_config(config)

    try:
        spec = QuerySpec.from_params(query, comparison, threshold, since, units)
        result = run_gate(
            spec,
            cfg,
            build_log=typer.echo,
            run_log_path=run_log or get_run_log_path(),
        )
    except ThresholdExceeded as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_THRESHOLD)
    except ConfigError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_CONFIG)
    except (EncodingError, TransportError, DecodeError) as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_TRANSPORT)

    typer.secho(
        f"Count: {result.count} is within threshold {spec.threshold} ({spec.comparison.value}).",
        fg=typer.colors.GREEN,
    )


@app.command("validate")
def validate_cmd(
    query: str | None = typer.Option(None, "--query", help="Query to check"),
    threshold: str | None = typer.Option(None, "--threshold", help="Threshold to check"),
    since: str | None = typer.Option(None, "--since", help="Since value to check"),
    indexes: str | None = typer.Option(None, "--indexes", help="Index override to check"),
    timeout: str | None = typer.Option(None, "--timeout", help="Request timeout (ms) to check"),
) -> None:
    """Check build-step and settings values without querying."""
    checks = [
        ("query", query, validate_query),
        ("threshold", threshold, validate_threshold),
        ("since", since, validate_since),
        ("indexes", indexes, validate_indexes),
        ("timeout", timeout, validate_request_timeout),
    ]
    failed = False
    checked = 0
    for name, value, validator in checks:
        if value is None:
            continue
        checked += 1
        try:
            validator(value)
        except ConfigError as exc:
            failed = True
            typer.secho(f"{name}: {exc}", fg=typer.colors.RED)
        else:
            typer.echo(f"{name}: OK")

    if checked == 0:
        typer.echo("Nothing to validate.")
    if failed:
        raise typer.Exit(code=1)


@config_app.command("show")
def config_show_cmd(
    config: Path | None = typer.Option(None, "--config", help="Path to countgate config.json"),
) -> None:
    """Print the effective connection settings (password masked)."""
    cfg = _load_config(config)
    typer.echo(json.dumps(cfg.masked(), indent=2))


if __name__ == "__main__":
    app()
