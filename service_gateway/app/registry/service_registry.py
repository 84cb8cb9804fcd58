"""
Static registry of the upstream services fronted by the gateway.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List

from shared.config import BaseConfig
from shared.errors import UnknownServiceError
from shared.logging import get_logger

COURSE_SERVICE = "course-service"
DSA_SERVICE = "dsa-service"
RESUME_ANALYZER = "resume-analyzer"
PROFILE_SERVICE = "profile-service"

# logical name -> settings attribute prefix, base URL setting
_SERVICE_SETTINGS = (
    (COURSE_SERVICE, "course_service", "course_generation_url"),
    (DSA_SERVICE, "dsa_service", "interview_coach_url"),
    (RESUME_ANALYZER, "resume_analyzer", "resume_analyzer_url"),
    (PROFILE_SERVICE, "profile_service", "profile_service_url"),
)


@dataclass(frozen=True)
class ServiceDescriptor:
    """Where and how to reach one upstream service."""
    name: str
    base_url: str
    health_path: str = "/health"
    timeout_ms: int = 5000
    max_retries: int = 2

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def url_for(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"


class ServiceRegistry:
    """Read-only mapping from logical service name to descriptor."""

    def __init__(self, descriptors: Iterable[ServiceDescriptor]):
        self._services: Dict[str, ServiceDescriptor] = {}
        for descriptor in descriptors:
            self._services[descriptor.name] = descriptor
        self.logger = get_logger("gateway.registry")

    @classmethod
    def from_settings(cls, settings: BaseConfig) -> "ServiceRegistry":
        """Build the registry once at startup."""
        descriptors = [
            ServiceDescriptor(
                name=name,
                base_url=getattr(settings, url_attr),
                timeout_ms=getattr(settings, f"{prefix}_timeout_ms"),
                max_retries=getattr(settings, f"{prefix}_max_retries"),
            )
            for name, prefix, url_attr in _SERVICE_SETTINGS
        ]
        registry = cls(descriptors)
        registry.logger.info(
            "Service registry loaded",
            services={d.name: d.base_url for d in descriptors}
        )
        return registry

    def resolve(self, name: str) -> ServiceDescriptor:
        try:
            return self._services[name]
        except KeyError:
            raise UnknownServiceError(name) from None

    def names(self) -> List[str]:
        return list(self._services)

    def descriptors(self) -> Iterator[ServiceDescriptor]:
        return iter(self._services.values())

    def __contains__(self, name: object) -> bool:
        return name in self._services

    def __len__(self) -> int:
        return len(self._services)
