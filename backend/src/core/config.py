"""
Application configuration using python-dotenv.

This module loads environment variables from .env file into os.environ
for use throughout the scheduling engine.
"""

import os
import pathlib
from dotenv import load_dotenv


# Determine if we're running in a test environment
# Don't load .env file during testing to ensure predictable test behavior
is_testing = os.getenv("PYTEST_VERSION") is not None or any("pytest" in str(frame) for frame in __import__('inspect').stack(0))

# Load .env file into os.environ (only outside of testing)
if not is_testing:
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent / ".env",  # backend/.env (when run from backend/src)
        pathlib.Path(__file__).parent.parent.parent.parent / ".env",  # repository root
        pathlib.Path.cwd() / ".env",
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


def get_database_url():
    """Get the database URL from environment."""
    return os.getenv(
        "DATABASE_URL",
        "sqlite:///./practice_scheduling.db"
    )

DATABASE_URL = get_database_url()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Scheduling defaults
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "America/New_York")
DEFAULT_SLOT_DURATION_MINUTES = int(os.getenv("DEFAULT_SLOT_DURATION_MINUTES", "60"))

# Caller-level timeout for the recurring series (batch conflict check + child creation)
RECURRING_BOOKING_TIMEOUT_SECONDS = float(os.getenv("RECURRING_BOOKING_TIMEOUT_SECONDS", "30"))

# Notified waitlist entries older than this are expired
WAITLIST_NOTIFICATION_TTL_HOURS = int(os.getenv("WAITLIST_NOTIFICATION_TTL_HOURS", "24"))
