"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any application import so the global
settings object is built with the in-memory store and a known admin key.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("APP_ADMIN_API_KEYS", "test-admin-key-123,test-admin-key-456")
os.environ.setdefault("RATE_LIMIT_LIMIT_KEY", "algebraTutorRateLimit")
os.environ.setdefault("RATE_LIMIT_MAX_REQUESTS", "5")
os.environ.setdefault("RATE_LIMIT_WINDOW_MS", "86400000")
os.environ.setdefault("LOG_LEVEL", "WARNING")
