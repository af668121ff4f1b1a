# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Exceptions raised by the coop controller and its collaborators.

Every error the controller can report maps to exactly one ``ErrorKind`` so
that callers (command handlers, a transport layer) can branch on the kind
rather than on message text:

    try:
        await coop.open()
    except AlreadyOpenedError:
        ...
    except CoopError as err:
        print(err.kind.value)
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Closed set of error kinds."""

    INVALID_FORMAT = "invalid_format"
    INVALID_STATUS = "invalid_status"
    INVALID_CONFIG = "invalid_config"
    AUTOMATIC_MODE_ENABLED = "automatic_mode_enabled"
    STATUS_UNKNOWN = "status_unknown"
    ALREADY_OPENED = "already_opened"
    ALREADY_CLOSED = "already_closed"
    ALREADY_OPENING = "already_opening"
    ALREADY_CLOSING = "already_closing"
    ACTUATION_FAILED = "actuation_failed"
    SOLAR_EVENT_UNAVAILABLE = "solar_event_unavailable"


class CoopError(Exception):
    """Base class for all coop errors."""

    kind: ErrorKind


class InvalidFormatError(CoopError, ValueError):
    """A schedule or offset string could not be parsed."""

    kind = ErrorKind.INVALID_FORMAT

    def __init__(self, value: str, expected: str):
        super().__init__(f"Invalid format '{value}', expected {expected}")
        self.value = value
        self.expected = expected


class InvalidStatusError(CoopError, ValueError):
    """An update request carried a status other than opened/closed."""

    kind = ErrorKind.INVALID_STATUS

    def __init__(self, value: str):
        super().__init__(f"Status '{value}' is incorrect, use 'opened' or 'closed'")
        self.value = value


class ConfigError(CoopError):
    """The configuration file is missing or malformed."""

    kind = ErrorKind.INVALID_CONFIG


class SolarEventUnavailableError(CoopError):
    """The sun does not rise or set at these coordinates on that date."""

    kind = ErrorKind.SOLAR_EVENT_UNAVAILABLE


class AutomaticModeEnabledError(CoopError):
    """A manual operation was attempted while automatic mode owns the door."""

    kind = ErrorKind.AUTOMATIC_MODE_ENABLED

    def __init__(self, action: str):
        super().__init__(f"Cannot {action} the coop because automatic mode is enabled")
        self.action = action


class TransitionError(CoopError):
    """A transition was rejected because of the current status."""

    message = "Cannot {action} the coop, status is {status}"

    def __init__(self, action: str, status, message: Optional[str] = None):
        super().__init__(
            message or self.message.format(action=action, status=status.value)
        )
        self.action = action
        self.status = status


class StatusUnknownError(TransitionError):
    kind = ErrorKind.STATUS_UNKNOWN
    message = "Cannot {action} the coop because the status is unknown"


class AlreadyOpenedError(TransitionError):
    kind = ErrorKind.ALREADY_OPENED
    message = "Coop is already opened"


class AlreadyClosedError(TransitionError):
    kind = ErrorKind.ALREADY_CLOSED
    message = "Coop is already closed"


class AlreadyOpeningError(TransitionError):
    kind = ErrorKind.ALREADY_OPENING
    message = "Coop is already opening"


class AlreadyClosingError(TransitionError):
    kind = ErrorKind.ALREADY_CLOSING
    message = "Coop is already closing"


class ActuationFailedError(TransitionError):
    """The actuator failed; the coop status is now unknown."""

    kind = ErrorKind.ACTUATION_FAILED

    def __init__(self, action: str, status, cause: Optional[BaseException] = None):
        super().__init__(
            action, status, f"Error while trying to {action} the door: {cause}"
        )
        self.cause = cause


class ActuationError(Exception):
    """Raised by an actuator when the door could not be moved."""
