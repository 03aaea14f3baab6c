"""Centralized constants for the Lexis application.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Scheduling (SM-2) ----------
DEFAULT_EASINESS = 2.5
MIN_EASINESS = 1.3
LAPSE_QUALITY_THRESHOLD = 3  # quality below this is a lapse
MAX_QUALITY = 5
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 3
LAPSE_INTERVAL_DAYS = 1

# ---------- Store / HTTP ----------
REQUEST_TIMEOUT = 30.0
RESPONSIVENESS_TIMEOUT = 2.0
DEFAULT_AUDIO_BUCKET = "course-assets"
PAGE_SIZE = 1000  # PostgREST max-rows default on Supabase
ID_FILTER_BATCH = 100  # ids per ``in.(...)`` filter, keeps URLs short
INVALID_TEXT_REPRESENTATION = "22P02"  # Postgres error code for a malformed id

# ---------- Canonical clock ----------
DEFAULT_TIMEZONE = "UTC"
