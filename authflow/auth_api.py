"""Remote authentication service client."""

import httpx
import logging
from typing import Optional

from .errors import NetworkError, RemoteAuthError

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/user/login"
SIGNUP_PATH = "/auth/user/signup"
SEND_OTP_PATH = "/auth/send-otp"
VERIFY_OTP_PATH = "/auth/verify-otp"

DEFAULT_LOGIN_ERROR = "Failed to login. Please try again."
DEFAULT_SIGNUP_ERROR = "Failed to sign up. Please try again."
DEFAULT_SEND_OTP_ERROR = "Failed to send OTP. Please try again."
DEFAULT_VERIFY_OTP_ERROR = "Failed to verify OTP. Please try again."


class AuthAPI:
    """Async client for the credential and OTP endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the API client.

        Args:
            base_url: The API base URL
            timeout: Request timeout in seconds
            transport: Optional transport override (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def _get_headers(self) -> dict:
        """Get headers for API requests."""
        return {
            "accept": "application/json",
            "content-type": "application/json",
        }

    def _error_message(self, response: httpx.Response, default: str) -> str:
        """Extract the service's message from an error response."""
        try:
            data = response.json()
        except ValueError:
            return default

        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        return default

    async def _post(self, path: str, payload: dict, default_error: str) -> dict:
        """POST a JSON payload and return the decoded body of a 2xx response."""
        url = f"{self.base_url}{path}"
        logger.debug(f"POST {url}")

        try:
            response = await self._client.post(url, json=payload, headers=self._get_headers())
        except httpx.RequestError as e:
            logger.error(f"Request to {url} failed: {e}")
            raise NetworkError(f"Could not reach authentication service: {e}") from e

        if not response.is_success:
            message = self._error_message(response, default_error)
            logger.error(f"{path} failed: {response.status_code} - {message}")
            raise RemoteAuthError(message, status_code=response.status_code)

        if not response.content:
            return {}

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteAuthError(default_error, status_code=response.status_code) from e

        return data if isinstance(data, dict) else {}

    def _extract_token(self, data: dict, status_code: int = 200) -> str:
        token = data.get("token")
        if not token or not isinstance(token, str):
            logger.error(f"Response without token, keys: {sorted(data.keys())}")
            raise RemoteAuthError("No token in response", status_code=status_code)
        return token

    async def login(self, email: str, password: str) -> str:
        """Exchange email and password for a session token."""
        data = await self._post(
            LOGIN_PATH,
            {"email": email, "password": password},
            DEFAULT_LOGIN_ERROR
        )
        logger.info("Password login successful")
        return self._extract_token(data)

    async def signup(self, name: str, email: str, phone: str, password: str) -> str:
        """Create an account and return its session token."""
        data = await self._post(
            SIGNUP_PATH,
            {"name": name, "email": email, "phone": phone, "password": password},
            DEFAULT_SIGNUP_ERROR
        )
        logger.info("Signup successful")
        return self._extract_token(data)

    async def send_otp(self, phone: str) -> None:
        """Ask the service to send an OTP to a phone number."""
        await self._post(SEND_OTP_PATH, {"phone": phone}, DEFAULT_SEND_OTP_ERROR)
        logger.info(f"OTP sent to {phone}")

    async def verify_otp(self, phone: str, otp: str) -> str:
        """Verify an OTP and return the issued session token."""
        data = await self._post(
            VERIFY_OTP_PATH,
            {"phone": phone, "otp": otp},
            DEFAULT_VERIFY_OTP_ERROR
        )
        logger.info(f"OTP verified for {phone}")
        return self._extract_token(data)

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()
