import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "class_attendance_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

MAX_PAST_DAYS = 30
MAX_FUTURE_DAYS = 0
ALLOW_WEEKENDS = True
MAX_EDIT_WINDOW_HOURS = 168
LOW_ATTENDANCE_THRESHOLD = 75.0

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
LOG_FILE = None
