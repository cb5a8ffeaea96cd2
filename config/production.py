import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "class_attendance"),
}

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

MAX_PAST_DAYS = int(os.getenv("MAX_PAST_DAYS", "30"))
MAX_FUTURE_DAYS = int(os.getenv("MAX_FUTURE_DAYS", "0"))
ALLOW_WEEKENDS = bool(int(os.getenv("ALLOW_WEEKENDS", "1")))
MAX_EDIT_WINDOW_HOURS = int(os.getenv("MAX_EDIT_WINDOW_HOURS", "168"))
LOW_ATTENDANCE_THRESHOLD = float(os.getenv("LOW_ATTENDANCE_THRESHOLD", "75"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "logs/class_attendance.log")
