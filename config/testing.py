import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "onboarding_test_db"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

SESSION_TTL_HOURS = 1

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads-test")
MAX_UPLOAD_BYTES = 1024 * 1024

EMAIL_CONFIG = {
    "host": "",
    "port": 587,
    "user": "",
    "password": "",
    "sender": "",
    "timeout": 2,
}
NOTIFY_FAILURE_POLICY = "log"
PORTAL_URL = "http://localhost:3000"

BOOTSTRAP_HR_EMAIL = "admin@company.com"
BOOTSTRAP_HR_PASSWORD = "admin123"
