"""Heuristic short-term weather classifier.

The classifier maps a :class:`FeatureBundle` to a pressure level, a 3 hour
pressure trend and an instability score, then picks an icon with a summary and
detail line. It is a deterministic rule set, not a trained model.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from models.config import PipelineConfig, PressureThresholds
from models.records import (
    Classification,
    FeatureBundle,
    PressureLevel,
    PressureTrend,
    WeatherIcon,
)

_Outcome = Tuple[WeatherIcon, str, str]

OUTCOMES: Dict[str, _Outcome] = {
    "humid_no_pressure": (
        WeatherIcon.rain,
        "Possible rain",
        "Very high humidity, local showers possible.",
    ),
    "no_pressure": (
        WeatherIcon.cloud,
        "Uncertain forecast",
        "Pressure data missing, the forecast is unreliable.",
    ),
    "improving_clear": (
        WeatherIcon.sun,
        "Improving, fair weather",
        "Pressure rising towards high values: generally clear skies.",
    ),
    "improving": (
        WeatherIcon.partly,
        "Improving trend",
        "Pressure rising: clouds or precipitation may ease.",
    ),
    "sharp_worsening": (
        WeatherIcon.storm,
        "Sharp worsening",
        "Pressure falling fast in an unstable atmosphere: showers or thunderstorms "
        "possible in the next hours.",
    ),
    "worsening": (
        WeatherIcon.rain,
        "Worsening",
        "Pressure falling: more clouds and possible precipitation.",
    ),
    "stable_good": (
        WeatherIcon.sun,
        "Stable, good conditions",
        "High pressure and a steady trend: generally fair weather.",
    ),
    "persistent_instability": (
        WeatherIcon.rain,
        "Persistent instability",
        "Low pressure and an unstable atmosphere: scattered showers possible.",
    ),
    "overcast": (
        WeatherIcon.cloud,
        "Overcast or variable skies",
        "Low pressure but little movement: mostly cloudy, limited precipitation.",
    ),
    "moderate_instability": (
        WeatherIcon.rain,
        "Moderate instability",
        "Normal pressure but a somewhat unstable atmosphere: brief local showers possible.",
    ),
    "mostly_stable": (
        WeatherIcon.partly,
        "Mostly stable",
        "Slight variability without strong signs of worsening or improvement.",
    ),
    "snow_or_ice": (
        WeatherIcon.ice,
        "Snow or ice forming",
        "Precipitation with near-freezing temperatures: snowfall and ice on the ground possible.",
    ),
    "snow": (
        WeatherIcon.snow,
        "Possible snowfall",
        "Precipitation with low temperatures: snowfall possible, especially in the coldest hours.",
    ),
    "frost": (
        WeatherIcon.ice,
        "Ice or frost risk",
        "Temperatures around freezing and high humidity: frost possible on exposed surfaces.",
    ),
}

_RISING = {PressureTrend.strong_up, PressureTrend.up}
_FALLING = {PressureTrend.strong_down, PressureTrend.down}
_PRECIPITATION = {WeatherIcon.rain, WeatherIcon.storm}
_DRY = {WeatherIcon.cloud, WeatherIcon.partly, WeatherIcon.sun}


def classify_pressure_level(
    p_now: Optional[float], thresholds: PressureThresholds = PressureThresholds()
) -> PressureLevel:
    if p_now is None:
        return PressureLevel.unknown
    if p_now >= thresholds.high:
        return PressureLevel.high
    if p_now <= thresholds.low:
        return PressureLevel.low
    return PressureLevel.normal


def classify_pressure_trend(
    dp3h: Optional[float], thresholds: PressureThresholds = PressureThresholds()
) -> PressureTrend:
    if dp3h is None:
        return PressureTrend.unknown
    if dp3h <= -thresholds.dp3_strong:
        return PressureTrend.strong_down
    if dp3h <= -thresholds.dp3_medium:
        return PressureTrend.down
    if dp3h >= thresholds.dp3_strong:
        return PressureTrend.strong_up
    if dp3h >= thresholds.dp3_medium:
        return PressureTrend.up
    return PressureTrend.stable


def instability_index(bundle: FeatureBundle, config: Optional[PipelineConfig] = None) -> float:
    """Unbounded volatility score; absent features contribute nothing."""
    weights = (config or PipelineConfig()).weights
    inst = 0.0

    for weight, delta in (
        (weights.dp3h, bundle.dp3h),
        (weights.dp6h, bundle.dp6h),
        (weights.dp1h, bundle.dp1h),
    ):
        if delta is not None:
            inst += weight * abs(delta)

    if bundle.h_now is not None:
        inst += weights.humidity_excess * max(0.0, bundle.h_now - weights.humidity_baseline)

    for weight, rise in ((weights.dh3h, bundle.dh3h), (weights.dh6h, bundle.dh6h)):
        if rise is not None and rise > 0:
            inst += weight * (rise / weights.humidity_rise_scale)

    return inst * (1.0 + weights.seasonal * bundle.doy_sin)


def _base_outcome(
    trend: PressureTrend, level: PressureLevel, inst: float, config: PipelineConfig
) -> str:
    decision = config.decision
    if trend in _RISING:
        return "improving_clear" if level is PressureLevel.high else "improving"
    if trend in _FALLING:
        return "sharp_worsening" if inst > decision.storm_instability else "worsening"
    if level is PressureLevel.high:
        return "stable_good"
    if level is PressureLevel.low:
        return "persistent_instability" if inst > decision.showers_instability else "overcast"
    return "moderate_instability" if inst > decision.showers_instability else "mostly_stable"


def decide_weather(bundle: FeatureBundle, config: Optional[PipelineConfig] = None) -> Classification:
    config = config or PipelineConfig()
    decision = config.decision
    level = classify_pressure_level(bundle.p_now, config.pressure)
    trend = classify_pressure_trend(bundle.dp3h, config.pressure)
    inst = instability_index(bundle, config)

    if bundle.p_now is None:
        key = (
            "humid_no_pressure"
            if bundle.h_now is not None and bundle.h_now > decision.humid_fallback
            else "no_pressure"
        )
        icon, summary, detail = OUTCOMES[key]
        return Classification(
            pressure_level=level,
            pressure_trend=PressureTrend.unknown,
            instability=inst,
            icon=icon,
            summary=summary,
            detail=detail,
        )

    icon, summary, detail = OUTCOMES[_base_outcome(trend, level, inst, config)]
    ice_risk = False

    # Cold weather turns precipitation into snow/ice and dry skies into frost.
    t_now = bundle.t_now
    if t_now is not None:
        ice_risk = (
            decision.ice_min_temperature <= t_now <= decision.ice_max_temperature
            and (bundle.h_now or 0.0) >= decision.ice_min_humidity
        )
        if t_now <= decision.ice_max_temperature and icon in _PRECIPITATION:
            icon, summary, detail = OUTCOMES["snow_or_ice" if ice_risk else "snow"]
        elif ice_risk and icon in _DRY:
            icon, summary, detail = OUTCOMES["frost"]

    return Classification(
        pressure_level=level,
        pressure_trend=trend,
        instability=inst,
        icon=icon,
        summary=summary,
        detail=detail,
        ice_risk=ice_risk,
    )
