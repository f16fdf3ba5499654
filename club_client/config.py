"""
Club client configuration. Where the API lives and where credentials are kept.
"""
import os

# Club API base URL; every dispatched path is relative to it
API_BASE_URL = os.environ.get("CLUB_API_URL", "http://127.0.0.1:5000/api").rstrip("/")

# Renewal endpoint (relative to API_BASE_URL). Reads the refresh cookie, returns {"token": ...}
REFRESH_PATH = "/auth/refresh"

# Route the browser is sent to when the session cannot be renewed
LOGIN_ROUTE = "/login"

# Per-request timeout (seconds) for calls to the API
REQUEST_TIMEOUT = float(os.environ.get("CLUB_REQUEST_TIMEOUT", "10.0"))

# JSON file holding token + user between runs. Empty -> in-memory only
CREDENTIALS_PATH = os.environ.get("CLUB_CREDENTIALS_PATH", "").strip()
