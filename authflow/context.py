"""
Auth context.

Builds the storage, session store, API client, flows and facade from
configuration and owns their lifecycle. Screens and the CLI share one
context per process.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .auth_api import AuthAPI
from .config import Config, load_config
from .credential_flow import CredentialAuthFlow
from .facade import AuthFacade
from .otp_flow import OtpFlowController
from .session_store import SessionStore
from .storage import JsonFileTokenStorage, TokenStorage

logger = logging.getLogger(__name__)


@dataclass
class AuthContext:
    """Container for the authentication components."""
    config: Config
    storage: TokenStorage
    session: SessionStore
    api: AuthAPI
    credentials: CredentialAuthFlow
    otp: OtpFlowController
    facade: AuthFacade

    @classmethod
    def create(
        cls,
        config: Optional[Config] = None,
        storage: Optional[TokenStorage] = None,
        api: Optional[AuthAPI] = None,
        clock: Callable[[], float] = time.time
    ) -> "AuthContext":
        """
        Factory method to create an AuthContext with all dependencies.

        Args:
            config: Optional config (loads from env if not provided)
            storage: Optional token storage (JSON file from config if not provided)
            api: Optional API client (built from config if not provided)
            clock: Wall-clock source for the OTP resend throttle

        Returns:
            Configured AuthContext, not yet initialized
        """
        cfg = config or load_config()
        storage = storage or JsonFileTokenStorage(cfg.storage.token_file, cfg.storage.token_key)
        api = api or AuthAPI(cfg.api.base_url, timeout=cfg.api.timeout_seconds)

        session = SessionStore(storage)
        credentials = CredentialAuthFlow(api)
        otp = OtpFlowController(
            api,
            resend_cooldown=cfg.otp.resend_cooldown_seconds,
            tick_interval=cfg.otp.countdown_tick_seconds,
            clock=clock
        )
        facade = AuthFacade(session, credentials=credentials, otp=otp)

        return cls(
            config=cfg,
            storage=storage,
            session=session,
            api=api,
            credentials=credentials,
            otp=otp,
            facade=facade
        )

    def initialize(self):
        """Rehydrate the session before anything reads it."""
        return self.session.initialize()

    async def close(self):
        """Clean up resources."""
        await self.otp.close()
        self.session.teardown()
        await self.api.close()


# Global context instance
_context: Optional[AuthContext] = None


def get_context() -> AuthContext:
    """
    Get or create the process-wide AuthContext.

    The session is initialized on first access.
    """
    global _context

    if _context is None:
        logger.info("Initializing auth context...")
        _context = AuthContext.create()
        _context.initialize()
        logger.info("Auth context initialized")

    return _context


async def close_context():
    """Close and discard the process-wide AuthContext."""
    global _context
    if _context:
        await _context.close()
        _context = None
        logger.info("Auth context closed")
