"""
Password login and signup.

Validates the form locally, then exchanges the credentials for a session
token. The caller hands the token to AuthFacade.complete_login().
"""

import logging

from .auth_api import AuthAPI
from .errors import RequestInProgressError, ValidationError

logger = logging.getLogger(__name__)


def _is_blank(value: str) -> bool:
    return not value or not value.strip()


class CredentialAuthFlow:
    """Request/response exchange for password login and signup."""

    def __init__(self, api: AuthAPI):
        self.api = api
        self._loading = False

    @property
    def loading(self) -> bool:
        """True while a request is outstanding."""
        return self._loading

    async def _exchange(self, call, *args) -> str:
        """Run one remote call under the loading guard."""
        if self._loading:
            raise RequestInProgressError()

        self._loading = True
        try:
            return await call(*args)
        finally:
            self._loading = False

    async def login(self, email: str, password: str) -> str:
        """
        Log in with email and password.

        Args:
            email: Account email
            password: Account password

        Returns:
            Session token issued by the service

        Raises:
            ValidationError: If email or password is empty (no request sent)
            RemoteAuthError: If the service rejects the credentials
            NetworkError: On transport failure
        """
        if _is_blank(email) or not password:
            raise ValidationError("missing_credentials", "Email and password are required")

        logger.info(f"Logging in {email.strip()}...")
        return await self._exchange(self.api.login, email.strip(), password)

    async def signup(
        self,
        name: str,
        email: str,
        phone: str,
        password: str,
        confirm_password: str
    ) -> str:
        """
        Create an account.

        The confirmation field is checked locally and never transmitted.

        Returns:
            Session token issued by the service

        Raises:
            ValidationError: On password mismatch or missing fields (no request sent)
            RemoteAuthError: If the service rejects the signup
            NetworkError: On transport failure
        """
        if password != confirm_password:
            raise ValidationError("password_mismatch", "Passwords do not match")

        missing = [
            label for label, value in (("name", name), ("email", email), ("phone", phone))
            if _is_blank(value)
        ]
        if not password:
            missing.append("password")
        if missing:
            raise ValidationError("missing_fields", f"Missing required fields: {', '.join(missing)}")

        logger.info(f"Signing up {email.strip()}...")
        return await self._exchange(
            self.api.signup, name.strip(), email.strip(), phone.strip(), password
        )
