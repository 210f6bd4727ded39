import os

# =====================================
# Global configuration for Ascend
# =====================================

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# TEST_MODE:
# When True, testing features are enabled.
# Example uses:
#   - Auto-seed a demo season on startup
#   - Allow rolling over a single league before its week has ended
TEST_MODE = os.getenv("ASCEND_TEST_MODE", "false").lower() == "true"

# --- Database ---
DEFAULT_DB_PATH = os.path.join(BASE_DIR, "ascend.db")
DATABASE_URL = os.getenv("ASCEND_DATABASE_URL", f"sqlite+aiosqlite:///{DEFAULT_DB_PATH}")
# Seed scripts run on a sync engine; derived from the async URL unless set.
SYNC_DATABASE_URL = os.getenv(
    "ASCEND_SYNC_DATABASE_URL",
    DATABASE_URL.replace("+aiosqlite", "").replace("+asyncpg", "+psycopg"),
)
SQL_ECHO = os.getenv("ASCEND_SQL_ECHO", "false").lower() == "true"

# --- Logging ---
LOG_LEVEL = os.getenv("ASCEND_LOG_LEVEL", "INFO")

# --- League week window ---
# Weeks run Monday 00:00 -> Sunday 23:59:59.999 in this timezone.
LEAGUE_TIMEZONE = os.getenv("ASCEND_LEAGUE_TIMEZONE", "UTC")

# --- Rollover scheduling ---
# The in-process loop is off by default; production triggers rollover from cron.
ENABLE_ROLLOVER_LOOP = os.getenv("ASCEND_ENABLE_ROLLOVER_LOOP", "false").lower() == "true"
ROLLOVER_GRACE_SECONDS = int(os.getenv("ASCEND_ROLLOVER_GRACE_SECONDS", "60"))
