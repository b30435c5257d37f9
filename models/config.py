"""Tunable parameters of the cleaning and forecast pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional

from models.records import Channel


@dataclass(frozen=True)
class ChannelLimits:
    """Inclusive validity range for a channel."""

    min: float
    max: float


TEMPERATURE_INTERIOR = ChannelLimits(min=-10.0, max=50.0)
TEMPERATURE_EXTERIOR = ChannelLimits(min=-30.0, max=50.0)
HUMIDITY = ChannelLimits(min=0.0, max=100.0)
PRESSURE = ChannelLimits(min=950.0, max=1050.0)
AUX_TEMPERATURE = ChannelLimits(min=0.0, max=100.0)

TEMPERATURE_PROFILES: Dict[str, ChannelLimits] = {
    "interior": TEMPERATURE_INTERIOR,
    "exterior": TEMPERATURE_EXTERIOR,
}


@dataclass(frozen=True)
class ChannelConfig:
    limits: ChannelLimits
    # Maximum step between consecutive accepted samples; None disables the spike filter.
    max_step: Optional[float] = None


@dataclass(frozen=True)
class PressureThresholds:
    """Pressure level (hPa) and 3 hour tendency (hPa/3h) cut-offs."""

    high: float = 1020.0
    low: float = 1002.0
    dp3_strong: float = 4.0
    dp3_medium: float = 2.0


@dataclass(frozen=True)
class WindowConfig:
    short_hours: float = 1.0
    medium_hours: float = 3.0
    long_hours: float = 6.0
    lookback_hours: float = 24.0
    min_samples: int = 3
    stale_after_hours: float = 3.0


@dataclass(frozen=True)
class InstabilityWeights:
    dp3h: float = 1.0
    dp6h: float = 0.5
    dp1h: float = 0.3
    humidity_excess: float = 0.02
    humidity_baseline: float = 70.0
    dh3h: float = 0.3
    dh6h: float = 0.5
    humidity_rise_scale: float = 10.0
    seasonal: float = 0.1


@dataclass(frozen=True)
class DecisionThresholds:
    storm_instability: float = 6.0
    showers_instability: float = 5.0
    humid_fallback: float = 80.0
    ice_min_temperature: float = -3.0
    ice_max_temperature: float = 1.0
    ice_min_humidity: float = 80.0


def _default_channels() -> Dict[Channel, ChannelConfig]:
    return {
        Channel.temperature: ChannelConfig(TEMPERATURE_EXTERIOR, max_step=10.0),
        Channel.humidity: ChannelConfig(HUMIDITY, max_step=20.0),
        Channel.pressure: ChannelConfig(PRESSURE, max_step=6.0),
        Channel.aux_temperature: ChannelConfig(AUX_TEMPERATURE),
    }


@dataclass(frozen=True)
class PipelineConfig:
    channels: Mapping[Channel, ChannelConfig] = field(default_factory=_default_channels)
    pressure: PressureThresholds = field(default_factory=PressureThresholds)
    windows: WindowConfig = field(default_factory=WindowConfig)
    weights: InstabilityWeights = field(default_factory=InstabilityWeights)
    decision: DecisionThresholds = field(default_factory=DecisionThresholds)
    compare_days: int = 1

    def channel(self, channel: Channel) -> ChannelConfig:
        return self.channels[channel]


def default_config(temperature_profile: str = "exterior", compare_days: int = 1) -> PipelineConfig:
    """Build the stock configuration for an exterior or interior temperature sensor."""
    try:
        limits = TEMPERATURE_PROFILES[temperature_profile]
    except KeyError as exc:
        raise ValueError(f"Unknown temperature profile {temperature_profile!r}.") from exc
    if compare_days < 1:
        raise ValueError("compare_days must be at least 1.")

    channels = _default_channels()
    channels[Channel.temperature] = replace(channels[Channel.temperature], limits=limits)
    return PipelineConfig(channels=channels, compare_days=compare_days)
