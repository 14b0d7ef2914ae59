import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "onboarding_db"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed the roster manager and the bootstrap HR account on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "1")))

SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "24"))

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

EMAIL_CONFIG = {
    "host": os.getenv("EMAIL_HOST", "smtp.gmail.com"),
    "port": int(os.getenv("EMAIL_PORT", "587")),
    "user": os.getenv("EMAIL_USER", ""),
    "password": os.getenv("EMAIL_PASS", ""),
    "sender": os.getenv("EMAIL_FROM", ""),
    "timeout": float(os.getenv("EMAIL_TIMEOUT", "10")),
}
NOTIFY_FAILURE_POLICY = os.getenv("NOTIFY_FAILURE_POLICY", "log")
PORTAL_URL = os.getenv("PORTAL_URL", "http://localhost:3000")

BOOTSTRAP_HR_EMAIL = os.getenv("BOOTSTRAP_HR_EMAIL", "admin@company.com")
BOOTSTRAP_HR_PASSWORD = os.getenv("BOOTSTRAP_HR_PASSWORD", "admin123")
