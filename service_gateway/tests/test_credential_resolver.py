"""
Unit tests for API key resolution.
"""

import pytest

from service_gateway.app.credentials import CredentialResolver, CredentialSet
from service_gateway.app.registry import ServiceRegistry
from shared.errors import ConfigurationError, MissingCredentialError
from shared.test_helpers import make_config


class TestCredentialResolver:
    """Test cases for CredentialResolver."""

    def test_default_key_only(self):
        """Without an override the default key is used."""
        resolver = CredentialResolver("default-key")

        credentials = resolver.credential_for("course-service")

        assert credentials.service_name == "course-service"
        assert credentials.api_key == "default-key"
        assert credentials.uses_override is False

    def test_override_wins(self):
        """A service-specific key takes precedence over the default."""
        resolver = CredentialResolver("default-key", {"course-service": "course-key"})

        credentials = resolver.credential_for("course-service")

        assert credentials.api_key == "course-key"
        assert credentials.primary_key == "default-key"
        assert credentials.uses_override is True
        assert resolver.credential_for("dsa-service").api_key == "default-key"

    def test_empty_override_falls_back_to_default(self):
        """Blank overrides are treated as absent."""
        resolver = CredentialResolver("default-key", {"course-service": "   "})

        assert resolver.credential_for("course-service").api_key == "default-key"

    def test_override_without_default(self):
        """An override alone is enough."""
        resolver = CredentialResolver(None, {"dsa-service": "dsa-key"})

        assert resolver.credential_for("dsa-service").api_key == "dsa-key"
        with pytest.raises(MissingCredentialError):
            resolver.credential_for("course-service")

    def test_no_keys_fails(self):
        """Neither default nor override fails."""
        resolver = CredentialResolver("")

        with pytest.raises(MissingCredentialError) as exc_info:
            resolver.credential_for("profile-service")

        assert exc_info.value.details == {"service": "profile-service"}

    def test_from_settings_reads_overrides(self):
        """Overrides come from the per-service settings."""
        config = make_config(default_api_key="shared", resume_analyzer_api_key="resume-only")
        resolver = CredentialResolver.from_settings(config)

        assert resolver.credential_for("resume-analyzer").api_key == "resume-only"
        assert resolver.credential_for("profile-service").api_key == "shared"

    def test_every_registered_service_has_an_override_setting(self):
        """Override keys line up with the registry's service names."""
        config = make_config(
            default_api_key=None,
            course_service_api_key="course-key",
            dsa_service_api_key="dsa-key",
            resume_analyzer_api_key="resume-key",
            profile_service_api_key="profile-key",
        )
        resolver = CredentialResolver.from_settings(config)
        names = ServiceRegistry.from_settings(config).names()

        resolver.validate(names)
        assert all(resolver.credential_for(name).uses_override for name in names)

    def test_validate_is_startup_fatal(self):
        """A service with no key is a configuration error at startup."""
        resolver = CredentialResolver(None, {"dsa-service": "dsa-key"})

        with pytest.raises(ConfigurationError):
            resolver.validate(["dsa-service", "course-service"])

    def test_repr_masks_keys(self):
        """Keys never appear in reprs."""
        credentials = CredentialSet("dsa-service", "secret-default", "secret-override")

        assert "secret" not in repr(credentials)
