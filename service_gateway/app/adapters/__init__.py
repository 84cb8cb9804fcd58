"""
Adapters package for the Gateway Service.

Contains the HTTP client wrapper for the upstream StudyMate services. The
adapter encapsulates:

- Request shapes and outbound auth headers
- Timeouts and retry policy for idempotent calls
- Error mapping to UpstreamError kinds

Circuit breaking lives in the router, not here; keep adapters thin and side
effect free outside of explicit calls.
"""

from .upstream_client import UpstreamClient, UpstreamRequest

__all__ = [
    "UpstreamClient",
    "UpstreamRequest",
]
