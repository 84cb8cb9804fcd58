"""
Unit tests for gateway JWT helpers.
"""

import pytest
from unittest.mock import MagicMock
from fastapi import Request
from jose import jwt

from service_gateway.app.auth import BearerAuthenticator, ServiceTokenIssuer
from shared.errors import AuthenticationError
from shared.test_helpers import TEST_JWT_SECRET, MockTokenGenerator


class TestBearerAuthenticator:
    """Test cases for BearerAuthenticator."""

    @pytest.fixture
    def authenticator(self):
        return BearerAuthenticator(TEST_JWT_SECRET)

    @pytest.fixture
    def mock_request(self):
        request = MagicMock(spec=Request)
        request.headers = {}
        request.state = MagicMock()
        return request

    def test_anonymous_without_header(self, authenticator, mock_request):
        """No Authorization header means an anonymous context."""
        context = authenticator.authenticate(mock_request, request_id="req-1")

        assert context.authenticated is False
        assert context.request_id == "req-1"

    def test_valid_token(self, authenticator, mock_request):
        """Valid tokens yield the subject as user id."""
        token = MockTokenGenerator().generate_access_token(user_id="user-42", roles=["student", "mentor"])
        mock_request.headers = {"Authorization": f"Bearer {token}"}

        context = authenticator.authenticate(mock_request)

        assert context.user_id == "user-42"
        assert context.email == "student@studymate.dev"
        assert context.roles == ["student", "mentor"]
        assert mock_request.state.user_context == context

    @pytest.mark.parametrize("header", [
        "Basic dXNlcjpwYXNz",
        "Bearer ",
        "Bearer not-a-jwt",
    ])
    def test_invalid_headers(self, authenticator, mock_request, header):
        """Malformed headers and tokens are rejected."""
        mock_request.headers = {"Authorization": header}

        with pytest.raises(AuthenticationError):
            authenticator.authenticate(mock_request)

    def test_expired_token(self, authenticator, mock_request):
        """Expired tokens are rejected."""
        token = MockTokenGenerator().generate_access_token(expires_in=-60)
        mock_request.headers = {"Authorization": f"Bearer {token}"}

        with pytest.raises(AuthenticationError):
            authenticator.authenticate(mock_request)

    def test_token_without_subject(self, authenticator, mock_request):
        """Tokens need a subject claim."""
        token = jwt.encode({"email": "x@y.z"}, TEST_JWT_SECRET, algorithm="HS256")
        mock_request.headers = {"Authorization": f"Bearer {token}"}

        with pytest.raises(AuthenticationError, match="subject"):
            authenticator.authenticate(mock_request)

    @pytest.mark.parametrize("claims", [
        {"sub": "user-1", "email": 12345},
        {"sub": "user-1", "email": ["a@b.c"]},
        {"sub": "user-1", "roles": 7},
        {"sub": "user-1", "roles": {"admin": True}},
    ])
    def test_signed_token_with_malformed_claims(self, authenticator, mock_request, claims):
        """Validly signed tokens with wrongly typed claims are rejected, not a server error."""
        token = jwt.encode(claims, TEST_JWT_SECRET, algorithm="HS256")
        mock_request.headers = {"Authorization": f"Bearer {token}"}

        with pytest.raises(AuthenticationError):
            authenticator.authenticate(mock_request)


class TestServiceTokenIssuer:
    """Test cases for ServiceTokenIssuer."""

    def test_issue(self):
        """Service tokens target the upstream and expire after the TTL."""
        issuer = ServiceTokenIssuer(TEST_JWT_SECRET, ttl_seconds=120)

        token = issuer.issue("course-service", user_id="user-1")
        claims = jwt.decode(token, TEST_JWT_SECRET, algorithms=["HS256"], audience="course-service")

        assert claims["iss"] == "studymate-gateway"
        assert claims["user_id"] == "user-1"
        assert claims["exp"] - claims["iat"] == 120

    def test_issue_without_user(self):
        """Anonymous calls carry no user claim."""
        token = ServiceTokenIssuer(TEST_JWT_SECRET).issue("dsa-service")
        claims = jwt.decode(token, TEST_JWT_SECRET, algorithms=["HS256"], audience="dsa-service")

        assert "user_id" not in claims
