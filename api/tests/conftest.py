"""
Test configuration — sets required env vars before any imports.
"""

import os

# Dummy values so Settings() doesn't fail during test collection.
# No test talks to a real service — Supabase and HTTP APIs are mocked.
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SESSION_SECRET", "test-session-secret-with-enough-length")
os.environ.setdefault("DASHBOARD_TIMEZONE", "UTC")
