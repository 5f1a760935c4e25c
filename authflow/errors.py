"""Authentication flow exceptions."""

from typing import Optional


class AuthFlowError(Exception):
    """Base error for all authentication flow failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AuthFlowError):
    """Input rejected locally, before any network call."""

    def __init__(self, reason: str, message: Optional[str] = None):
        super().__init__(message or reason)
        self.reason = reason


class ThrottledError(AuthFlowError):
    """OTP resend requested before the resend gate opened."""

    def __init__(self, seconds_remaining: int):
        super().__init__(f"Resend available in {seconds_remaining}s")
        self.seconds_remaining = seconds_remaining


class InvalidTransitionError(AuthFlowError):
    """Operation not allowed from the current OTP state."""

    def __init__(self, current: str, attempted: str):
        super().__init__(f"Cannot {attempted} while {current}")
        self.current = current
        self.attempted = attempted


class RemoteAuthError(AuthFlowError):
    """Remote service rejected the credentials or OTP."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NetworkError(AuthFlowError):
    """Transport failure talking to the remote service."""
    pass


class PersistenceError(AuthFlowError):
    """Durable token storage could not be read or written."""
    pass


class RequestInProgressError(AuthFlowError):
    """A request is already outstanding for this flow."""

    def __init__(self, message: str = "A request is already in progress"):
        super().__init__(message)


class StaleResponseError(AuthFlowError):
    """Response arrived for a phone number that is no longer the target."""

    def __init__(self, phone: str):
        super().__init__(f"Discarded response for {phone}: flow moved to another number")
        self.phone = phone
