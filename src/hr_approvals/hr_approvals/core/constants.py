"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MAX_APPROVAL_DEPTH = 5

DEFAULT_APPROVAL_LEVELS = {
    "leave": 3,
    "overtime": 1,
    "correction": 2,
}

DEFAULT_LIST_LIMIT = 200
NOTIFICATION_INBOX_LIMIT = 50
MAX_OVERTIME_HOURS = 24
