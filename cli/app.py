from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from app.schemas import EvaluationResult
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_evaluation, render_snapshot
from feeds.csv_feed import load_csv
from feeds.parsing import FeedError, parse_timestamp
from models.config import default_config
from services.pipeline import evaluate
from services.windows import DEFAULT_RANGE, range_hours
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Clean weather station readings and classify the short-term weather trend.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


def _check_range(range_key: str) -> str:
    try:
        range_hours(range_key)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--range") from exc
    return range_key


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Forecast API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the forecast service.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("evaluate")
def evaluate_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="CSV of recorded readings."),
    range_key: str = typer.Option(DEFAULT_RANGE, "--range", "-r", help="Display range, e.g. 1h, 1d, 1w."),
    as_of: Optional[str] = typer.Option(
        None,
        "--as-of",
        help="ISO-8601 evaluation instant; naive values are read in STATION_TIMEZONE (defaults to now).",
    ),
    compare_days: Optional[int] = typer.Option(
        None,
        "--compare-days",
        min=1,
        max=7,
        help="Also group each channel into this many calendar days.",
    ),
    profile: Optional[str] = typer.Option(
        None,
        "--profile",
        help="Temperature sensor profile: exterior or interior.",
    ),
) -> None:
    """Evaluate a recorded CSV file locally, without the service."""
    range_key = _check_range(range_key)
    settings = get_settings()

    if as_of:
        try:
            evaluated_at = parse_timestamp(as_of, default_tz=settings.tz).astimezone(settings.tz)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--as-of") from exc
    else:
        evaluated_at = datetime.now(settings.tz)

    try:
        config = default_config(profile or settings.temperature_profile, settings.compare_days)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--profile") from exc

    try:
        feed = load_csv(file)
    except FeedError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    if feed.errors:
        typer.secho(f"Skipped {len(feed.errors)} malformed rows.", fg=typer.colors.YELLOW, err=True)

    result = evaluate(
        feed.readings,
        evaluated_at,
        config,
        range_key=range_key,
        compare_days=compare_days,
    )
    render_evaluation(EvaluationResult.model_validate(result).model_dump(mode="json"))


@app.command("forecast")
def forecast_command(
    ctx: typer.Context,
    range_key: str = typer.Option(DEFAULT_RANGE, "--range", "-r", help="Display range, e.g. 1h, 1d, 1w."),
) -> None:
    """Ask the service to refresh the live feed and show the result."""
    state = _get_state(ctx)
    payload = state.client.get_forecast(_check_range(range_key))
    render_snapshot(payload)


@app.command("snapshot")
def snapshot_command(
    ctx: typer.Context,
    range_key: str = typer.Option(DEFAULT_RANGE, "--range", "-r", help="Display range, e.g. 1h, 1d, 1w."),
) -> None:
    """Show the latest snapshot cached by the service."""
    state = _get_state(ctx)
    payload = state.client.get_snapshot(_check_range(range_key))
    render_snapshot(payload)
