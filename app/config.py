import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./woodshop.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))

# Frontend base URL, also the default CORS origin
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Pipeline automation
# Estimates sent this many days ago without a response become dead estimates
DEAD_ESTIMATE_THRESHOLD_DAYS = int(os.getenv("DEAD_ESTIMATE_THRESHOLD_DAYS", "7"))
# Optional first sweep step: ESTIMATE_IN_PROGRESS -> ESTIMATE_SENT after N idle days
AUTO_ADVANCE_STALE_ESTIMATES = os.getenv("AUTO_ADVANCE_STALE_ESTIMATES", "false").lower() == "true"
ESTIMATE_IN_PROGRESS_DAYS = int(os.getenv("ESTIMATE_IN_PROGRESS_DAYS", "5"))

# Scheduling
# One production day per this much estimated job value (minimum 1 day)
DURATION_VALUE_PER_DAY = float(os.getenv("DURATION_VALUE_PER_DAY", "2000"))
# Fixed installer priority for stacking jobs within a calendar day
INSTALLER_ORDER = [
    name.strip()
    for name in os.getenv("INSTALLER_ORDER", "Nick,Walter,Ed,Moris,Eder,Hayden").split(",")
    if name.strip()
]

# Google Calendar sync (best-effort, optional)
# Generate GOOGLE_REFRESH_TOKEN once through the OAuth consent flow and store it here
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REFRESH_TOKEN = os.getenv("GOOGLE_REFRESH_TOKEN")
GOOGLE_CALENDAR_ID = os.getenv("GOOGLE_CALENDAR_ID", "primary")
CALENDAR_TIMEZONE = os.getenv("CALENDAR_TIMEZONE", "America/Los_Angeles")
CALENDAR_SYNC_ENABLED = os.getenv("CALENDAR_SYNC_ENABLED", "true").lower() == "true"

# CORS - comma separated
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", f"{FRONTEND_URL},http://localhost:3000").split(",")
    if origin.strip()
]
