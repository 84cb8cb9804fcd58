"""
API key selection for upstream calls.

Each service may carry its own key; otherwise the shared default key is used.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

from shared.config import BaseConfig
from shared.errors import MissingCredentialError
from shared.logging import get_logger
from service_gateway.app.registry import COURSE_SERVICE, DSA_SERVICE, PROFILE_SERVICE, RESUME_ANALYZER

# logical service name -> settings attribute holding its override key
_OVERRIDE_SETTINGS = {
    COURSE_SERVICE: "course_service_api_key",
    DSA_SERVICE: "dsa_service_api_key",
    RESUME_ANALYZER: "resume_analyzer_api_key",
    PROFILE_SERVICE: "profile_service_api_key",
}


@dataclass(frozen=True)
class CredentialSet:
    """Keys available to one upstream service."""
    service_name: str
    primary_key: Optional[str]
    override_key: Optional[str] = None

    @property
    def api_key(self) -> str:
        """The key to send: a non-empty override wins over the primary."""
        if self.override_key:
            return self.override_key
        return self.primary_key or ""

    @property
    def uses_override(self) -> bool:
        return bool(self.override_key)

    def __repr__(self) -> str:
        return (
            f"CredentialSet(service_name={self.service_name!r}, "
            f"primary_key={'***' if self.primary_key else None}, "
            f"override_key={'***' if self.override_key else None})"
        )


class CredentialResolver:
    """Resolves the credential set for a service from static configuration."""

    def __init__(self, default_key: Optional[str], overrides: Optional[Mapping[str, Optional[str]]] = None):
        self.default_key = (default_key or "").strip() or None
        self.overrides: Dict[str, str] = {
            name: key.strip()
            for name, key in (overrides or {}).items()
            if key and key.strip()
        }
        self.logger = get_logger("gateway.credentials")

    @classmethod
    def from_settings(cls, settings: BaseConfig) -> "CredentialResolver":
        return cls(
            settings.default_api_key,
            {name: getattr(settings, attr) for name, attr in _OVERRIDE_SETTINGS.items()},
        )

    def credential_for(self, service_name: str) -> CredentialSet:
        override = self.overrides.get(service_name)
        if not override and not self.default_key:
            raise MissingCredentialError(service_name)
        return CredentialSet(
            service_name=service_name,
            primary_key=self.default_key,
            override_key=override,
        )

    def validate(self, service_names: Iterable[str]) -> None:
        """Fail fast at startup if any service has no usable key."""
        for name in service_names:
            credentials = self.credential_for(name)
            self.logger.info(
                "Credential resolved",
                service=name,
                source="override" if credentials.uses_override else "default"
            )
