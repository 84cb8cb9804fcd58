"""
Upstream service registry for the Gateway Service.
"""

from .service_registry import (
    COURSE_SERVICE,
    DSA_SERVICE,
    PROFILE_SERVICE,
    RESUME_ANALYZER,
    ServiceDescriptor,
    ServiceRegistry,
)

__all__ = [
    "COURSE_SERVICE",
    "DSA_SERVICE",
    "PROFILE_SERVICE",
    "RESUME_ANALYZER",
    "ServiceDescriptor",
    "ServiceRegistry",
]
