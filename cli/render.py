from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

_READING_KEYS = (
    "sequence_id",
    "captured_at",
    "temperature",
    "air_humidity",
    "soil_humidity",
    "light_level",
    "pump_active",
)


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(reading: Dict[str, Any] | None, backend: Any = None) -> None:
    echo_heading("Reading")
    if not reading:
        typer.echo("No readings stored.")
    else:
        echo_key_values((key, reading.get(key)) for key in _READING_KEYS)
    if backend is not None:
        typer.echo(f"backend: {backend}")


def render_readings(payload: Dict[str, Any]) -> None:
    readings = payload.get("readings") or []
    echo_heading(f"Recent readings ({payload.get('count', len(readings))})")
    typer.echo(f"backend: {payload.get('backend')}")
    typer.echo(f"last_reset_marker: {payload.get('last_reset_marker') or 'never'}")
    if not readings:
        typer.echo("No readings stored.")
        return
    for reading in readings:
        pump = "on" if reading.get("pump_active") else "off"
        typer.echo(
            f"  #{reading.get('sequence_id')} {reading.get('captured_at')} "
            f"temp={reading.get('temperature')} air={reading.get('air_humidity')} "
            f"soil={reading.get('soil_humidity')} light={reading.get('light_level')} pump={pump}"
        )


def render_stats(payload: Dict[str, Any]) -> None:
    echo_heading("Statistics")
    echo_key_values(
        [
            ("total_records", payload.get("total_records")),
            ("first_record_at", payload.get("first_record_at")),
            ("last_record_at", payload.get("last_record_at")),
            ("backend", payload.get("backend")),
            ("policy", payload.get("policy")),
            ("last_reset_marker", payload.get("last_reset_marker") or "never"),
        ]
    )

    aggregates = payload.get("aggregates") or {}
    typer.echo()
    echo_heading("Aggregates")
    if aggregates.get("row_count"):
        echo_key_values(
            [
                ("row_count", aggregates.get("row_count")),
                ("min_temperature", aggregates.get("min_temperature")),
                ("max_temperature", aggregates.get("max_temperature")),
                ("mean_temperature", aggregates.get("mean_temperature")),
                ("mean_air_humidity", aggregates.get("mean_air_humidity")),
                ("pump_active_count", aggregates.get("pump_active_count")),
            ]
        )
    else:
        typer.echo("No aggregates available.")


def render_reset_info(payload: Dict[str, Any]) -> None:
    echo_heading("Retention")
    echo_key_values(
        [
            ("policy", payload.get("policy")),
            ("backend", payload.get("backend")),
            ("timezone", payload.get("timezone")),
            ("current_time", payload.get("current_time")),
            ("last_reset_marker", payload.get("last_reset_marker") or "never"),
            ("last_wipe_at", payload.get("last_wipe_at")),
            ("next_boundary_at", payload.get("next_boundary_at")),
            ("seconds_until_next_boundary", payload.get("seconds_until_next_boundary")),
            ("seconds_overdue", payload.get("seconds_overdue")),
        ]
    )
