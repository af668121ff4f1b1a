# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Configuration file loading.

The configuration is a YAML document:

    coop:
      latitude: 43.6043
      longitude: 1.4437
      automatic: true
      opening: {mode: time_based, value: "07:30"}
      closing: {mode: sun_based, value: "+00:30"}
    door:
      opening_duration: 60
      closing_duration: 60
    scheduler:
      interval: 10
    notifiers:
      - type: log
      - type: webhook
        url: https://example.com/hook

Every section is optional.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .actuator import DoorTimingConfig, SimulatedActuator
from .conditions import create_condition
from .const import (
    CHECK_FREQUENCY,
    DEFAULT_CLOSING_DURATION,
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    DEFAULT_OPENING_DURATION,
    DEFAULT_WEBHOOK_TIMEOUT,
    MODE_TIME_BASED,
    NOTIFIER_LOG,
    NOTIFIER_WEBHOOK,
)
from .coop import ConditionSpec, Coop
from .exceptions import ConfigError
from .notifiers import LoggingNotifier, Notifier, WebhookNotifier

logger = logging.getLogger(__name__)


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")
    return value


def _number(section: dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"'{key}' must be a number, got {value!r}") from err


def _flag(section: dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be true or false, got {value!r}")
    return value


def _condition(section: dict[str, Any], key: str, default: str) -> ConditionSpec:
    value = section.get(key)
    if value is None:
        return ConditionSpec(MODE_TIME_BASED, default)
    if not isinstance(value, dict) or "mode" not in value or "value" not in value:
        raise ConfigError(f"'{key}' must be a mapping with 'mode' and 'value'")
    return ConditionSpec.from_dict(value)


@dataclass
class NotifierConfig:
    """One notifier entry."""

    type: str = NOTIFIER_LOG
    url: str = ""
    timeout: float = DEFAULT_WEBHOOK_TIMEOUT

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotifierConfig":
        if not isinstance(data, dict):
            raise ConfigError(f"Notifier entry must be a mapping, got {data!r}")
        config = cls(
            type=str(data.get("type", NOTIFIER_LOG)),
            url=str(data.get("url", "")),
            timeout=_number(data, "timeout", DEFAULT_WEBHOOK_TIMEOUT),
        )
        if config.type not in (NOTIFIER_LOG, NOTIFIER_WEBHOOK):
            raise ConfigError(f"Unknown notifier type '{config.type}'")
        if config.type == NOTIFIER_WEBHOOK and not config.url:
            raise ConfigError("Webhook notifier requires a 'url'")
        return config


@dataclass
class CoopConfig:
    """Complete startup configuration."""

    latitude: float = 0.0
    longitude: float = 0.0
    automatic: bool = False
    opening: ConditionSpec = field(
        default_factory=lambda: ConditionSpec(MODE_TIME_BASED, "07:00")
    )
    closing: ConditionSpec = field(
        default_factory=lambda: ConditionSpec(MODE_TIME_BASED, "20:00")
    )
    opening_duration: float = DEFAULT_OPENING_DURATION
    closing_duration: float = DEFAULT_CLOSING_DURATION
    interval: float = CHECK_FREQUENCY
    notifiers: list[NotifierConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "CoopConfig":
        """Create from a parsed YAML document."""
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping")

        coop = _section(data, "coop")
        door = _section(data, "door")
        scheduler = _section(data, "scheduler")

        notifiers = data.get("notifiers") or []
        if not isinstance(notifiers, list):
            raise ConfigError("'notifiers' must be a list")

        interval = _number(scheduler, "interval", CHECK_FREQUENCY)
        if interval <= 0:
            raise ConfigError(f"'interval' must be positive, got {interval}")

        return cls(
            latitude=_number(coop, "latitude", 0.0),
            longitude=_number(coop, "longitude", 0.0),
            automatic=_flag(coop, "automatic", False),
            opening=_condition(coop, "opening", "07:00"),
            closing=_condition(coop, "closing", "20:00"),
            opening_duration=_number(door, "opening_duration", DEFAULT_OPENING_DURATION),
            closing_duration=_number(door, "closing_duration", DEFAULT_CLOSING_DURATION),
            interval=interval,
            notifiers=[NotifierConfig.from_dict(entry) for entry in notifiers],
        )


def load_config(path: Union[str, Path]) -> CoopConfig:
    """Read and parse a YAML configuration file."""
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as err:
        raise ConfigError(f"Error while reading configuration file {path}: {err}") from err

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error when reading configuration data: {err}") from err

    logger.debug(f"Loaded configuration from {path}")
    return CoopConfig.from_dict(data)


def build_actuator(config: CoopConfig) -> SimulatedActuator:
    return SimulatedActuator(
        DoorTimingConfig(
            opening_duration=config.opening_duration,
            closing_duration=config.closing_duration,
        )
    )


def build_notifiers(config: CoopConfig) -> list[Notifier]:
    notifiers: list[Notifier] = []
    for entry in config.notifiers:
        if entry.type == NOTIFIER_WEBHOOK:
            notifiers.append(WebhookNotifier(entry.url, timeout=entry.timeout))
        else:
            notifiers.append(LoggingNotifier())
    return notifiers


def build_coop(config: CoopConfig, actuator=None, **kwargs) -> Coop:
    """Create the coop described by ``config``.

    Raises:
        InvalidFormatError: a condition string is malformed.
    """
    latitude = config.latitude or DEFAULT_LATITUDE
    longitude = config.longitude or DEFAULT_LONGITUDE
    return Coop(
        actuator or build_actuator(config),
        create_condition(config.opening.mode, config.opening.value, latitude, longitude),
        create_condition(config.closing.mode, config.closing.value, latitude, longitude),
        latitude=latitude,
        longitude=longitude,
        automatic=config.automatic,
        notifiers=build_notifiers(config),
        **kwargs,
    )
