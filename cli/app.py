from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_reading, render_readings, render_reset_info, render_stats


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for operating the greenhouse telemetry collector.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Collector API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("submit")
def submit_command(
    ctx: typer.Context,
    temperature: float = typer.Option(..., "--temperature", "-t", help="Air temperature in Celsius."),
    air_humidity: float = typer.Option(..., "--air-humidity", help="Relative air humidity (%)."),
    soil_humidity: int = typer.Option(..., "--soil-humidity", help="Raw soil moisture reading."),
    light_level: int = typer.Option(..., "--light-level", help="Raw light sensor reading."),
    pump_active: bool = typer.Option(False, "--pump-on/--pump-off", help="Pump state."),
) -> None:
    """Submit one reading as the sensor device would."""
    state = _get_state(ctx)
    payload = state.client.submit_reading(
        {
            "temperature": temperature,
            "airHumidity": air_humidity,
            "soilHumidity": soil_humidity,
            "lightLevel": light_level,
            "pumpActive": pump_active,
        }
    )
    typer.secho("Reading stored.", fg=typer.colors.GREEN)
    render_reading(payload.get("reading"), backend=payload.get("backend"))


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the most recent reading."""
    state = _get_state(ctx)
    payload = state.client.latest()
    render_reading(payload.get("reading"), backend=payload.get("backend"))


@app.command("recent")
def recent_command(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Maximum readings to list."),
) -> None:
    """List recent readings, newest first."""
    state = _get_state(ctx)
    render_readings(state.client.recent(limit))


@app.command("stats")
def stats_command(ctx: typer.Context) -> None:
    """Show record counts and aggregates."""
    state = _get_state(ctx)
    render_stats(state.client.stats())


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show the retention marker and the next scheduled wipe."""
    state = _get_state(ctx)
    render_reset_info(state.client.reset_info())


@app.command("force-reset")
def force_reset_command(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Wipe every stored reading now."""
    state = _get_state(ctx)
    if not yes:
        typer.confirm(f"Delete all readings on {state.config.base_url}?", abort=True)
    payload = state.client.force_reset()
    typer.secho(
        f"Reset complete. deleted_count={payload.get('deleted_count')}",
        fg=typer.colors.GREEN,
    )
    typer.echo(f"next_boundary_at: {payload.get('next_boundary_at')}")
