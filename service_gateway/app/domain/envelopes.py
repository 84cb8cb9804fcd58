"""
Request/response envelopes exchanged between callers and the router.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ResponseSource(str, Enum):
    """Where a response body came from."""
    LIVE = "LIVE"
    FALLBACK = "FALLBACK"


class UserContext(BaseModel):
    """Caller identity attached to an inbound request."""

    model_config = ConfigDict(frozen=True)

    user_id: Optional[str] = None
    email: Optional[str] = None
    roles: List[str] = Field(default_factory=list)
    request_id: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return bool(self.user_id)


class RequestEnvelope(BaseModel):
    """Normalized inbound request."""

    model_config = ConfigDict(frozen=True)

    operation: str = Field(..., description="Logical operation name, e.g. generateCourse")
    payload: Dict[str, Any] = Field(default_factory=dict)
    user_context: UserContext = Field(default_factory=UserContext)


class ResponseEnvelope(BaseModel):
    """Normalized response. A FALLBACK body always carries a warning."""

    model_config = ConfigDict(frozen=True)

    body: Dict[str, Any]
    source: ResponseSource
    latency_ms: float = Field(..., ge=0)
    service: str
    operation: str
    warning: Optional[str] = None
    error_kind: Optional[str] = None

    @model_validator(mode="after")
    def _check_source(self) -> "ResponseEnvelope":
        if self.source == ResponseSource.FALLBACK and not self.warning:
            raise ValueError("fallback responses must carry a warning")
        if self.source == ResponseSource.LIVE and (self.warning or self.error_kind):
            raise ValueError("live responses cannot carry a warning")
        return self

    @property
    def degraded(self) -> bool:
        return self.source == ResponseSource.FALLBACK
