import os

APP_TITLE = "UserFocus"
APPDATA_DIR = os.getenv("USER_FOCUS_HOME") or os.path.join(
    os.getenv("APPDATA") or os.path.expanduser("~"), "UserFocus"
)

ACTIVE_SESSION_FILE = "active_session.json"
PROFILE_FILE = "profile.json"

LOG_DIR = os.path.join(APPDATA_DIR, "logs")
LOG_FILE = os.path.join(LOG_DIR, "user_focus.log")
LOG_MAX_BYTES = 1_000_000
LOG_BACKUP_COUNT = 3

# Rewards
POINTS_INTERVAL_SEC = 120.0
TICK_INTERVAL_SEC = 1.0
STALE_SESSION_MAX_AGE_SEC = 24 * 60 * 60
REMINDER_LOOKAHEAD = 5

DEFAULT_PROFILE_NAME = "User"

# UI
UI_UPDATE_INTERVAL_MS = 500
AVATAR_SIZE_PX = 96
RECENT_SESSIONS_SHOWN = 10
