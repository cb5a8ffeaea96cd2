"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_NAMES = ("Lecture 1", "Lecture 2", "Lecture 3", "Lecture 4", "Lab", "Tutorial")

DEFAULT_MAX_PAST_DAYS = 30
DEFAULT_MAX_FUTURE_DAYS = 0
DEFAULT_MAX_EDIT_WINDOW_HOURS = 168

DEFAULT_LOW_ATTENDANCE_THRESHOLD = 75.0
DEFAULT_ALERT_MIN_SESSIONS = 5

DEFAULT_PAGE_SIZE = 50
DEFAULT_HISTORY_LIMIT = 50

MAX_REASON_LENGTH = 500
