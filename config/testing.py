import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "tutoring_center_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

SMS_API_URL = ""
SMS_API_TOKEN = ""
SMS_FROM = ""
NOTIFY_TIMEOUT_SECONDS = 2.0

SCHEDULER_ENABLED = False
ATTENDANCE_SWEEP_MINUTES = 15
PAYMENT_SWEEP_HOUR = 9
