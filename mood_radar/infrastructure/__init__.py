"""Infrastructure layer components.

This module provides infrastructure components such as the shared
HTTP client used by external provider clients.
"""

from mood_radar.infrastructure.http_client import HTTPClient

__all__ = ["HTTPClient"]
