import logging
import os

# ----- Configuration -----
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./habit_tracker.db")
SQL_ECHO = os.environ.get("SQL_ECHO", "false").lower() == "true"

SECRET_KEY = os.environ.get("SECRET_KEY", "supersecretkey")
ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))  # 7 days

ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]

# "hold" keeps the streak unchanged for completions dated before the last
# completed day; "recalculate" rebuilds the streak from history instead.
BACKFILL_HOLD = "hold"
BACKFILL_RECALCULATE = "recalculate"
BACKFILL_POLICY = os.environ.get("HABIT_BACKFILL_POLICY", BACKFILL_HOLD)

# Accepted window for log dates, relative to today
LOG_WINDOW_PAST_DAYS = int(os.environ.get("LOG_WINDOW_PAST_DAYS", 7))
LOG_WINDOW_FUTURE_DAYS = int(os.environ.get("LOG_WINDOW_FUTURE_DAYS", 1))

MAX_DATE_RANGE_DAYS = 365

DEFAULT_CATEGORIES = [
    ("Health", "Physical health and exercise"),
    ("Productivity", "Work and study routines"),
    ("Mindfulness", "Meditation, journaling and reflection"),
    ("Learning", "Reading and skill building"),
    ("Social", "Relationships and community"),
]


def configure_logging(level: str = LOG_LEVEL):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
