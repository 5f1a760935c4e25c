"""
Unit tests for CredentialAuthFlow.

Tests local validation, delegation to the service and the loading guard.
"""

import asyncio

import pytest

from authflow import (
    NetworkError,
    RemoteAuthError,
    RequestInProgressError,
    ValidationError,
)
from authflow.auth_api import LOGIN_PATH, SIGNUP_PATH


class TestPasswordLogin:
    """Tests for CredentialAuthFlow.login()."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_login_success(self, credential_flow, fake_service, test_config):
        """Test login returns the issued token."""
        token = await credential_flow.login(test_config["test_email"], test_config["test_password"])

        assert token == fake_service.DEFAULT_TOKENS[LOGIN_PATH]
        assert credential_flow.loading is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,password", [("", "secret"), ("jane@example.com", ""), ("   ", "secret")])
    async def test_login_empty_fields(self, credential_flow, fake_service, email, password):
        """Test that empty credentials fail before any request."""
        with pytest.raises(ValidationError):
            await credential_flow.login(email, password)

        assert fake_service.requests == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_login_rejected(self, credential_flow, fake_service, test_config):
        """Test that a rejection carries the service message."""
        fake_service.respond(LOGIN_PATH, 401, {"message": "Invalid credentials"})

        with pytest.raises(RemoteAuthError, match="Invalid credentials"):
            await credential_flow.login(test_config["test_email"], "wrong")

        assert credential_flow.loading is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_login_network_error(self, credential_flow, fake_service, test_config):
        """Test transport failure surfaces as NetworkError."""
        fake_service.network_down = True

        with pytest.raises(NetworkError):
            await credential_flow.login(test_config["test_email"], test_config["test_password"])

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_second_login_while_loading(self, credential_flow, fake_service, test_config, wait_until):
        """Test that a second submission is rejected while one is in flight."""
        release = fake_service.block(LOGIN_PATH)
        first = asyncio.create_task(
            credential_flow.login(test_config["test_email"], test_config["test_password"])
        )
        await wait_until(lambda: len(fake_service.calls(LOGIN_PATH)) == 1)

        assert credential_flow.loading is True
        with pytest.raises(RequestInProgressError):
            await credential_flow.login(test_config["test_email"], test_config["test_password"])

        release.set()
        assert await first == fake_service.DEFAULT_TOKENS[LOGIN_PATH]
        assert len(fake_service.calls(LOGIN_PATH)) == 1


class TestSignup:
    """Tests for CredentialAuthFlow.signup()."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_signup_success(self, credential_flow, fake_service, test_config):
        """Test signup returns the token and never sends the confirmation."""
        token = await credential_flow.signup(
            test_config["test_user_name"],
            test_config["test_email"],
            test_config["test_phone"],
            test_config["test_password"],
            test_config["test_password"]
        )

        assert token == fake_service.DEFAULT_TOKENS[SIGNUP_PATH]
        [payload] = fake_service.calls(SIGNUP_PATH)
        assert set(payload) == {"name", "email", "phone", "password"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_signup_password_mismatch(self, credential_flow, fake_service, test_config):
        """Test that mismatched passwords fail with zero network calls."""
        with pytest.raises(ValidationError) as exc_info:
            await credential_flow.signup(
                test_config["test_user_name"],
                test_config["test_email"],
                test_config["test_phone"],
                "a",
                "b"
            )

        assert exc_info.value.reason == "password_mismatch"
        assert fake_service.requests == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_signup_missing_fields(self, credential_flow, fake_service, test_config):
        """Test that missing fields are reported before any request."""
        with pytest.raises(ValidationError) as exc_info:
            await credential_flow.signup("", test_config["test_email"], "", "pw", "pw")

        assert exc_info.value.reason == "missing_fields"
        assert "name" in exc_info.value.message
        assert "phone" in exc_info.value.message
        assert fake_service.requests == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_signup_rejected(self, credential_flow, fake_service, test_config):
        """Test that a rejected signup carries the service message."""
        fake_service.respond(SIGNUP_PATH, 409, {"message": "Email already registered"})

        with pytest.raises(RemoteAuthError, match="Email already registered"):
            await credential_flow.signup(
                test_config["test_user_name"],
                test_config["test_email"],
                test_config["test_phone"],
                test_config["test_password"],
                test_config["test_password"]
            )
