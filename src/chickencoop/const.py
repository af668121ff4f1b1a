# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Constants shared across the chickencoop package."""

# Seconds between two automatic evaluations of the coop
CHECK_FREQUENCY = 10.0

# Used when the configured coordinates are zero/unset (Toulouse, France)
DEFAULT_LATITUDE = 43.6043
DEFAULT_LONGITUDE = 1.4437

# Coop statuses
STATUS_UNKNOWN = "unknown"
STATUS_OPENING = "opening"
STATUS_OPENED = "opened"
STATUS_CLOSING = "closing"
STATUS_CLOSED = "closed"

# Condition modes
MODE_TIME_BASED = "time_based"
MODE_SUN_BASED = "sun_based"

# Transition actions
ACTION_OPEN = "open"
ACTION_CLOSE = "close"

# Simulated door travel time (seconds)
DEFAULT_OPENING_DURATION = 60.0
DEFAULT_CLOSING_DURATION = 60.0

# Notifier types (configuration)
NOTIFIER_LOG = "log"
NOTIFIER_WEBHOOK = "webhook"

DEFAULT_WEBHOOK_TIMEOUT = 10.0

# Notification messages
MSG_STATUS_UNKNOWN = "The status of the coop is unknown."
MSG_OPENED = "The coop has been opened."
MSG_CLOSED = "The coop has been closed."
MSG_OPEN_FAILED = "The coop could not be opened: {error}"
MSG_CLOSE_FAILED = "The coop could not be closed: {error}"
