"""
Authentication helpers for the Gateway Service.
"""

from .tokens import BearerAuthenticator, ServiceTokenIssuer

__all__ = [
    "BearerAuthenticator",
    "ServiceTokenIssuer",
]
