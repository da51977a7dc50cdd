"""
Backend API client layer.

Provides async HTTP communication with the Mercurio REST backend.
"""

from mercurio.api.http_client import AsyncHttpClient, sanitize_for_log

__all__ = ["AsyncHttpClient", "sanitize_for_log"]
