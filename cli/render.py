from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import typer

ICON_GLYPHS = {
    "sun": "☀️",
    "partly": "⛅",
    "cloud": "☁️",
    "rain": "🌧️",
    "snow": "❄️",
    "storm": "⛈️",
    "ice": "🧊",
}

UNITS = {
    "temperature": "°C",
    "humidity": "%",
    "pressure": "hPa",
    "aux_temperature": "°C",
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def fmt(value: Optional[float], digits: int = 1, unit: str = "") -> str:
    if value is None:
        return "n/a"
    text = f"{value:.{digits}f}"
    return f"{text} {unit}" if unit else text


def render_classification(payload: Dict[str, Any]) -> None:
    echo_heading("Forecast")
    classification = payload.get("classification")
    if not classification:
        typer.echo("Not enough data for a trend.")
        return

    glyph = ICON_GLYPHS.get(classification.get("icon"), "ℹ️")
    typer.echo(f"{glyph}  {classification.get('summary')}")
    typer.echo(classification.get("detail"))
    echo_key_values(
        [
            ("icon", classification.get("icon")),
            ("pressure_level", classification.get("pressure_level")),
            ("pressure_trend", classification.get("pressure_trend")),
            ("instability", fmt(classification.get("instability"), 2)),
            ("ice_risk", classification.get("ice_risk")),
        ]
    )
    if payload.get("stale"):
        typer.secho("Warning: the newest reading is stale.", fg=typer.colors.YELLOW)

    features = payload.get("features") or {}
    typer.echo()
    echo_heading("Features")
    echo_key_values(
        [
            ("now", features.get("now")),
            ("pressure", fmt(features.get("p_now"), 1, "hPa")),
            ("temperature", fmt(features.get("t_now"), 1, "°C")),
            ("humidity", fmt(features.get("h_now"), 1, "%")),
            ("dp1h", fmt(features.get("dp1h"), 1, "hPa")),
            ("dp3h", fmt(features.get("dp3h"), 1, "hPa")),
            ("dp6h", fmt(features.get("dp6h"), 1, "hPa")),
            ("dh3h", fmt(features.get("dh3h"), 1, "%")),
            ("dh6h", fmt(features.get("dh6h"), 1, "%")),
            ("samples", features.get("sample_count")),
        ]
    )


def render_series(payload: Dict[str, Any]) -> None:
    echo_heading(f"Series ({payload.get('range_key')})")
    summaries = payload.get("summaries") or {}
    if not summaries:
        typer.echo("No series available.")
        return
    for channel, summary in summaries.items():
        unit = UNITS.get(channel, "")
        if not summary.get("count"):
            typer.echo(f"  - {channel}: no valid points")
            continue
        min_point = summary.get("min_point") or {}
        max_point = summary.get("max_point") or {}
        typer.echo(
            f"  - {channel}: {summary.get('count')} points, "
            f"min {fmt(min_point.get('y'), 1, unit)}, "
            f"max {fmt(max_point.get('y'), 1, unit)}"
        )


def render_day_groups(payload: Dict[str, Any]) -> None:
    day_groups = payload.get("day_groups") or {}
    if not day_groups:
        return
    day_summaries = payload.get("day_summaries") or {}
    typer.echo()
    echo_heading("Day comparison")
    for channel, groups in day_groups.items():
        unit = UNITS.get(channel, "")
        summaries = day_summaries.get(channel) or {}
        typer.echo(f"{channel}:")
        for group in groups:
            offset = group.get("offset")
            summary = summaries.get(str(offset)) or summaries.get(offset) or {}
            if not summary.get("count"):
                typer.echo(f"  - {group.get('label')}: no data")
                continue
            typer.echo(
                f"  - {group.get('label')}: {summary['count']} points, "
                f"min {fmt(summary['min_point']['y'], 1, unit)}, "
                f"max {fmt(summary['max_point']['y'], 1, unit)}, "
                f"mean {fmt(summary.get('mean'), 1, unit)}"
            )


def render_evaluation(payload: Dict[str, Any]) -> None:
    render_classification(payload)
    typer.echo()
    render_series(payload)
    render_day_groups(payload)
    typer.echo()
    echo_key_values(
        [
            ("as_of", payload.get("as_of")),
            ("total_readings", payload.get("total_readings")),
        ]
    )


def render_snapshot(payload: Dict[str, Any]) -> None:
    echo_key_values(
        [
            ("evaluated_at", payload.get("evaluated_at")),
            ("processing_ms", payload.get("processing_ms")),
        ]
    )
    typer.echo()
    render_evaluation(payload.get("result") or {})
