# khoj/config.py
from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env early so os.getenv works everywhere
load_dotenv()

REGION = os.getenv("AWS_REGION", "eu-north-1")

ALERTS_TABLE = os.getenv("ALERTS_TABLE", "Alerts")
REPORTS_TABLE = os.getenv("REPORTS_TABLE", "Reports")
AREA_STATISTICS_TABLE = os.getenv("AREA_STATISTICS_TABLE", "AreaStatistics")
NOTIFICATIONS_TABLE = os.getenv("NOTIFICATIONS_TABLE", "Notifications")
# citizens and police, PK user_id; written by the auth service
USERS_TABLE = os.getenv("USERS_TABLE", "Users")
# GSI on `area_key` ("<district>#<upazila>"), present on Alerts and Reports
AREA_INDEX = os.getenv("AREA_INDEX", "area-index")

# Optional global API prefix (e.g., "/api")
API_PREFIX = os.getenv("API_PREFIX", "").strip()
if API_PREFIX:
    if not API_PREFIX.startswith("/"):
        API_PREFIX = "/" + API_PREFIX
    API_PREFIX = API_PREFIX.rstrip("/")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Thread pool for detached recomputes that run outside a request
RECOMPUTE_WORKERS = int(os.getenv("RECOMPUTE_WORKERS", "4"))

TREND_HISTORY_MONTHS = int(os.getenv("TREND_HISTORY_MONTHS", "12"))

PORT = int(os.getenv("PORT", "8000"))
