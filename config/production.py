import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "tutoring_center"),
    "connect_timeout": int(os.getenv("DB_CONNECT_TIMEOUT", "10")),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

SMS_API_URL = os.getenv("SMS_API_URL", "")
SMS_API_TOKEN = os.getenv("SMS_API_TOKEN", "")
SMS_FROM = os.getenv("SMS_FROM", "")
NOTIFY_TIMEOUT_SECONDS = float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "10"))

SCHEDULER_ENABLED = bool(int(os.getenv("SCHEDULER_ENABLED", "1")))
ATTENDANCE_SWEEP_MINUTES = int(os.getenv("ATTENDANCE_SWEEP_MINUTES", "15"))
PAYMENT_SWEEP_HOUR = int(os.getenv("PAYMENT_SWEEP_HOUR", "9"))
