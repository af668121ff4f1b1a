# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Opening and closing conditions.

A condition answers one question: at what moment, on the calendar day of a
reference datetime, should the coop open (or close)? The controller never
needs to know which flavour it is talking to.

Example usage:
    from datetime import datetime
    from chickencoop.conditions import create_condition

    opening = create_condition("time_based", "07:30")
    closing = create_condition("sun_based", "+00:30", 43.6043, 1.4437)

    now = datetime.now().astimezone()
    print(opening.opening_time(now), closing.closing_time(now))
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime, time, timedelta, timezone

from astral import Observer
from astral.sun import sunrise, sunset

from .const import MODE_SUN_BASED, MODE_TIME_BASED
from .exceptions import InvalidFormatError, SolarEventUnavailableError

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_OFFSET_RE = re.compile(r"^([+-]?)(\d{1,2}):(\d{2})$")


def parse_time_of_day(value: str) -> tuple[int, int]:
    """Parse 'HH:MM' into (hour, minute)."""
    match = _TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidFormatError(value, "HH:MM")
    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise InvalidFormatError(value, "HH:MM")
    return hour, minute


def parse_offset(value: str) -> timedelta:
    """Parse a signed '[+-]HH:MM' duration."""
    match = _OFFSET_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidFormatError(value, "[+-]HH:MM")
    sign, hours, minutes = match.group(1), int(match.group(2)), int(match.group(3))
    if minutes > 59:
        raise InvalidFormatError(value, "[+-]HH:MM")
    offset = timedelta(hours=hours, minutes=minutes)
    return -offset if sign == "-" else offset


def format_offset(offset: timedelta) -> str:
    """Format a timedelta as '[+-]HH:MM'."""
    sign = "-" if offset < timedelta(0) else "+"
    minutes = int(abs(offset).total_seconds()) // 60
    return f"{sign}{minutes // 60:02d}:{minutes % 60:02d}"


class Condition(ABC):
    """Yields today's opening and closing moments."""

    mode: str

    @property
    @abstractmethod
    def value(self) -> str:
        """The string this condition was built from."""

    @abstractmethod
    def opening_time(self, reference: datetime) -> datetime:
        """Opening moment on the calendar day of ``reference``."""

    @abstractmethod
    def closing_time(self, reference: datetime) -> datetime:
        """Closing moment on the calendar day of ``reference``."""

    def to_dict(self) -> dict[str, str]:
        return {"mode": self.mode, "value": self.value}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


class TimeBasedCondition(Condition):
    """A fixed wall-clock time, the same every day."""

    mode = MODE_TIME_BASED

    def __init__(self, value: str):
        self.hour, self.minute = parse_time_of_day(value)

    @property
    def value(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    def _at(self, reference: datetime) -> datetime:
        return datetime.combine(
            reference.date(), time(self.hour, self.minute), tzinfo=reference.tzinfo
        )

    def opening_time(self, reference: datetime) -> datetime:
        return self._at(reference)

    def closing_time(self, reference: datetime) -> datetime:
        return self._at(reference)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimeBasedCondition):
            return NotImplemented
        return (self.hour, self.minute) == (other.hour, other.minute)


class SunBasedCondition(Condition):
    """Sunrise (opening) or sunset (closing) shifted by a signed offset.

    The solar event is recomputed on every call: sunrise and sunset drift
    every day, so nothing is cached between calls. Aware references are
    evaluated in their own timezone; naive references are taken as UTC and
    a naive result is returned.
    """

    mode = MODE_SUN_BASED

    def __init__(self, value: str, latitude: float, longitude: float):
        self.offset = parse_offset(value)
        self.latitude = latitude
        self.longitude = longitude
        self._observer = Observer(latitude=latitude, longitude=longitude)

    @property
    def value(self) -> str:
        return format_offset(self.offset)

    def _event(self, event, reference: datetime) -> datetime:
        tzinfo = reference.tzinfo or timezone.utc
        try:
            moment = event(self._observer, date=reference.date(), tzinfo=tzinfo)
        except ValueError as err:
            raise SolarEventUnavailableError(
                f"No {event.__name__} at ({self.latitude}, {self.longitude}) "
                f"on {reference.date()}: {err}"
            ) from err
        if reference.tzinfo is None:
            moment = moment.replace(tzinfo=None)
        return moment + self.offset

    def opening_time(self, reference: datetime) -> datetime:
        return self._event(sunrise, reference)

    def closing_time(self, reference: datetime) -> datetime:
        return self._event(sunset, reference)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SunBasedCondition):
            return NotImplemented
        return (self.offset, self.latitude, self.longitude) == (
            other.offset,
            other.latitude,
            other.longitude,
        )


def create_condition(
    mode: str, value: str, latitude: float = 0.0, longitude: float = 0.0
) -> Condition:
    """Build a condition from its mode tag and parameter string."""
    if mode == MODE_TIME_BASED:
        return TimeBasedCondition(value)
    if mode == MODE_SUN_BASED:
        return SunBasedCondition(value, latitude, longitude)
    raise InvalidFormatError(mode, f"'{MODE_TIME_BASED}' or '{MODE_SUN_BASED}'")
