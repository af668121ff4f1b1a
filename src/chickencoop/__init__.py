# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Chicken coop door controller.

Drives a single coop door from a fixed daily schedule or from solar events
(sunrise/sunset plus an offset), with manual override.

The controller can:
- Open and close the door on request when automation is off
- Evaluate its conditions periodically and actuate when automation is on
- Accept operator attestations of the door position
- Notify on failures and when the door position is unknown

Example usage:
    # Run interactively
    python -m chickencoop --config coop.yaml

    # Or use programmatically
    from chickencoop import Coop, CoopScheduler, SimulatedActuator
    from chickencoop.conditions import TimeBasedCondition

    coop = Coop(
        SimulatedActuator(),
        TimeBasedCondition("07:30"),
        TimeBasedCondition("20:00"),
        automatic=True,
    )
    scheduler = CoopScheduler(coop)
    await scheduler.start()
"""

from . import conditions, exceptions
from .actuator import Actuator, DoorTimingConfig, SimulatedActuator
from .conditions import create_condition
from .config import CoopConfig, build_coop, load_config
from .const import CHECK_FREQUENCY
from .coop import ConditionSpec, Coop, CoopState, CoopStatus, CoopUpdateRequest
from .notifiers import LoggingNotifier, Notifier, WebhookNotifier
from .scheduler import CoopScheduler

__all__ = [
    "Actuator",
    "CHECK_FREQUENCY",
    "ConditionSpec",
    "Coop",
    "CoopConfig",
    "CoopScheduler",
    "CoopState",
    "CoopStatus",
    "CoopUpdateRequest",
    "DoorTimingConfig",
    "LoggingNotifier",
    "Notifier",
    "SimulatedActuator",
    "WebhookNotifier",
    "build_coop",
    "conditions",
    "create_condition",
    "exceptions",
    "load_config",
]
