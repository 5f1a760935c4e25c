"""
Authentication session and OTP flow orchestration.

Exchanges credentials (password, OTP, signup) for a session token with the
remote service and keeps that token as the single source of truth for
whether the user is logged in.
"""

from .auth_api import AuthAPI
from .config import Config, load_config
from .context import AuthContext, get_context, close_context
from .credential_flow import CredentialAuthFlow
from .errors import (
    AuthFlowError,
    ValidationError,
    ThrottledError,
    InvalidTransitionError,
    RemoteAuthError,
    NetworkError,
    PersistenceError,
    RequestInProgressError,
    StaleResponseError,
)
from .facade import AuthFacade
from .otp_flow import OtpFlowController, OtpState, OtpSnapshot, ResendGate
from .session_store import AuthSessionState, SessionStore
from .storage import TokenStorage, JsonFileTokenStorage, MemoryTokenStorage

__all__ = [
    # Components
    "AuthAPI",
    "AuthContext",
    "AuthFacade",
    "CredentialAuthFlow",
    "OtpFlowController",
    "SessionStore",
    # Storage
    "TokenStorage",
    "JsonFileTokenStorage",
    "MemoryTokenStorage",
    # Data classes
    "AuthSessionState",
    "OtpState",
    "OtpSnapshot",
    "ResendGate",
    "Config",
    # Errors
    "AuthFlowError",
    "ValidationError",
    "ThrottledError",
    "InvalidTransitionError",
    "RemoteAuthError",
    "NetworkError",
    "PersistenceError",
    "RequestInProgressError",
    "StaleResponseError",
    # Functions
    "load_config",
    "get_context",
    "close_context",
]
