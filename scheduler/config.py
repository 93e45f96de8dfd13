"""
Runtime configuration for the scheduling API
Values come from the environment (a .env file is loaded by main.py)
"""

import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./scheduler.db")

# Auth
SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-change-in-production")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Owner notification channel (optional webhook)
NOTIFY_WEBHOOK_URL = os.getenv("NOTIFY_WEBHOOK_URL")
NOTIFY_TIMEOUT_SECONDS = float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "10"))

# Docket storage
STORAGE_DIR = os.getenv("STORAGE_DIR", "var/storage")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")
MAX_DOCKET_SIZE_MB = int(os.getenv("MAX_DOCKET_SIZE_MB", "10"))

# Schedule grid
SCHEDULE_START_HOUR = int(os.getenv("SCHEDULE_START_HOUR", "8"))
SCHEDULE_END_HOUR = int(os.getenv("SCHEDULE_END_HOUR", "18"))
DEFAULT_ASSIGNMENT_HOURS = int(os.getenv("DEFAULT_ASSIGNMENT_HOURS", "2"))

# How to read D/D/YYYY dates when both parts are <= 12: "DMY" or "MDY"
AMBIGUOUS_DATE_ORDER = os.getenv("AMBIGUOUS_DATE_ORDER", "DMY").upper()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
