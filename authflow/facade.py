"""
Auth facade.

The only path by which the application moves the session to logged in.
Flows obtain a token; the facade applies it to the SessionStore once the
exchange has fully succeeded.
"""

import logging
from typing import Callable, Optional

from .credential_flow import CredentialAuthFlow
from .errors import PersistenceError
from .otp_flow import OtpFlowController
from .session_store import AuthSessionState, SessionObserver, SessionStore

logger = logging.getLogger(__name__)


class AuthFacade:
    """login/logout entry points for the rest of the application."""

    def __init__(
        self,
        session: SessionStore,
        credentials: Optional[CredentialAuthFlow] = None,
        otp: Optional[OtpFlowController] = None
    ):
        self.session = session
        self.credentials = credentials
        self.otp = otp

    def complete_login(self, token: str) -> AuthSessionState:
        """
        Apply a token issued by a successful exchange.

        Raises:
            ValidationError: If the token is empty
            PersistenceError: If the token could not be stored
        """
        return self.session.login(token)

    def logout(self):
        """End the session. No-op when already logged out."""
        self.session.logout()

    def handle_unauthorized(self):
        """Destroy the session after the remote service rejected the token."""
        if self.session.current_state().is_logged_in:
            logger.warning("Session token rejected by remote service, logging out")
        self.session.logout()

    def current_state(self) -> AuthSessionState:
        return self.session.current_state()

    def subscribe(self, observer: SessionObserver) -> Callable[[], None]:
        return self.session.subscribe(observer)

    def _require(self, flow, name: str):
        if flow is None:
            raise RuntimeError(f"{name} flow not configured")
        return flow

    async def login_with_password(self, email: str, password: str) -> AuthSessionState:
        """Run the password login flow and log the session in."""
        token = await self._require(self.credentials, "Credential").login(email, password)
        return self.complete_login(token)

    async def signup(
        self,
        name: str,
        email: str,
        phone: str,
        password: str,
        confirm_password: str
    ) -> AuthSessionState:
        """Run the signup flow and log the new account in."""
        token = await self._require(self.credentials, "Credential").signup(
            name, email, phone, password, confirm_password
        )
        return self.complete_login(token)

    async def verify_otp(self, otp: str) -> AuthSessionState:
        """
        Verify the pending OTP and log the session in.

        If the token cannot be stored, the OTP flow is reset so the user can
        request a new code instead of being stuck on a verified number.
        """
        flow = self._require(self.otp, "OTP")
        token = await flow.verify(otp)
        try:
            return self.complete_login(token)
        except PersistenceError:
            logger.error("Could not store OTP session token, resetting OTP flow")
            flow.reset()
            raise
