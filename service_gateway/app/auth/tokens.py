"""
JWT helpers for the gateway: verifying inbound user tokens and minting
short-lived service tokens for upstream calls.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

from fastapi import Request
from jose import JWTError, jwt

from shared.errors import AuthenticationError
from shared.logging import get_logger
from service_gateway.app.domain.envelopes import UserContext

SERVICE_ISSUER = "studymate-gateway"


class ServiceTokenIssuer:
    """Signs service-to-service tokens with the shared JWT secret."""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl_seconds: int = 300,
                 issuer: str = SERVICE_ISSUER) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.ttl_seconds = ttl_seconds
        self.issuer = issuer

    def issue(self, audience: str, user_id: Optional[str] = None) -> str:
        now = int(time.time())
        claims: Dict[str, Any] = {
            "iss": self.issuer,
            "sub": self.issuer,
            "aud": audience,
            "iat": now,
            "exp": now + self.ttl_seconds,
        }
        if user_id:
            claims["user_id"] = user_id
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)


class BearerAuthenticator:
    """Verifies inbound ``Authorization: Bearer`` tokens.

    A request without the header is anonymous; a header that does not carry
    a valid token is rejected.
    """

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.logger = get_logger("gateway.auth.bearer")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_aud": False},
            )
        except JWTError as exc:
            self.logger.warning("JWT validation failed", error=str(exc))
            raise AuthenticationError("Invalid or expired token") from exc

    def authenticate(self, request: Request, request_id: Optional[str] = None) -> UserContext:
        authorization = request.headers.get("Authorization")
        if not authorization:
            return UserContext(request_id=request_id)

        if not authorization.startswith("Bearer "):
            raise AuthenticationError("Invalid authorization header format")

        token = authorization[7:].strip()
        if not token:
            raise AuthenticationError("Authorization header contained empty bearer token")

        claims = self.decode(token)
        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise AuthenticationError("JWT missing subject claim")

        email = claims.get("email")
        if email is not None and not isinstance(email, str):
            raise AuthenticationError("JWT email claim must be a string")

        roles = claims.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]
        if not isinstance(roles, list):
            raise AuthenticationError("JWT roles claim must be a list")

        context = UserContext(
            user_id=subject,
            email=email,
            roles=[str(role) for role in roles],
            request_id=request_id,
        )
        request.state.user_context = context
        return context
