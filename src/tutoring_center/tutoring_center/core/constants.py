"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

CYCLE_LENGTH_DAYS = 30
REMINDER_OFFSET_DAYS = 10

DEFAULT_ATTENDANCE_SWEEP_MINUTES = 15
DEFAULT_PAYMENT_SWEEP_HOUR = 9
DEFAULT_NOTIFY_TIMEOUT_SECONDS = 10.0
