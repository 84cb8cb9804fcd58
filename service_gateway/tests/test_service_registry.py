"""
Unit tests for the upstream service registry.
"""

import pytest

from service_gateway.app.registry import ServiceDescriptor, ServiceRegistry
from shared.errors import ConfigurationError, UnknownServiceError
from shared.test_helpers import SERVICE_URLS, make_config


class TestServiceRegistry:
    """Test cases for ServiceRegistry."""

    @pytest.fixture
    def registry(self):
        """Registry built from test settings."""
        return ServiceRegistry.from_settings(make_config(dsa_service_timeout_ms=4000, profile_service_max_retries=5))

    def test_resolve_known_services(self, registry):
        """Every configured service resolves to its descriptor."""
        for name, url in SERVICE_URLS.items():
            descriptor = registry.resolve(name)
            assert descriptor.name == name
            assert descriptor.base_url == url
            assert descriptor.health_path == "/health"

    def test_resolve_unknown_service(self, registry):
        """Unknown names fail with UnknownServiceError."""
        with pytest.raises(UnknownServiceError) as exc_info:
            registry.resolve("unknown")

        assert exc_info.value.code == "UNKNOWN_SERVICE"
        assert isinstance(exc_info.value, ConfigurationError)

    def test_per_service_timeouts_and_retries(self, registry):
        """Timeouts follow the call class; overrides are honoured."""
        assert registry.resolve("course-service").timeout_ms == 30000
        assert registry.resolve("dsa-service").timeout_ms == 4000
        assert registry.resolve("dsa-service").timeout_seconds == 4.0
        assert registry.resolve("profile-service").max_retries == 5

    def test_names_and_membership(self, registry):
        """Registry lists services in load order."""
        assert registry.names() == ["course-service", "dsa-service", "resume-analyzer", "profile-service"]
        assert "dsa-service" in registry
        assert "billing" not in registry
        assert len(registry) == 4

    def test_descriptor_is_immutable(self, registry):
        """Descriptors cannot be mutated after load."""
        descriptor = registry.resolve("course-service")
        with pytest.raises(AttributeError):
            descriptor.base_url = "http://elsewhere"

    def test_url_for_joins_paths(self):
        """Trailing and leading slashes are normalized."""
        descriptor = ServiceDescriptor(name="svc", base_url="http://svc.test/")
        assert descriptor.url_for("/chat") == "http://svc.test/chat"
        assert descriptor.url_for("health") == "http://svc.test/health"
