"""
Runtime settings.

Every value can be overridden with an environment variable of the same name.
"""

import os

# Published Google Sheets CSV with the requisition log.
FEED_URL: str = os.getenv(
    "FEED_URL",
    "https://docs.google.com/spreadsheets/d/e/2PACX-1vSC_myZfLrWVb3rzsFbX_7w9nuR2zBJxEYUqMh5UcSb07hwee7_7UECeU2zTFRePSgUwpvE0IcRmTmJ/pub?gid=323536618&single=true&output=csv",
)

FEED_TIMEOUT_SECONDS: float = float(os.getenv("FEED_TIMEOUT_SECONDS", "30"))

# Local offline copy (SQLite).  Empty string keeps the cache in memory only.
ORDER_DB_PATH: str = os.getenv("ORDER_DB_PATH", "orders.sqlite")

REFRESH_INTERVAL_SECONDS: int = int(os.getenv("REFRESH_INTERVAL_SECONDS", str(30 * 60)))

# Keep cached orders that disappeared from the feed instead of dropping them.
KEEP_ORPHANED_ORDERS: bool = os.getenv("KEEP_ORPHANED_ORDERS", "false").lower() in {"1", "true", "yes"}

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE: str = os.getenv("LOG_FILE", "")

EXPORT_FILENAME: str = os.getenv("EXPORT_FILENAME", "pedidos_actualizados.csv")
