"""
Session store.

Holds the current session token for the whole process and is the single
source of truth for "is this user logged in". Every transition follows the
order persist -> update -> notify, so memory is never ahead of disk.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .errors import PersistenceError, ValidationError
from .storage import TokenStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthSessionState:
    """Either logged out (token is None) or logged in with a token."""
    token: Optional[str] = None

    @classmethod
    def logged_out(cls) -> "AuthSessionState":
        return cls()

    @classmethod
    def logged_in(cls, token: str) -> "AuthSessionState":
        return cls(token=token)

    @property
    def is_logged_in(self) -> bool:
        return self.token is not None

    def __repr__(self) -> str:
        if self.token is None:
            return "LoggedOut"
        return f"LoggedIn({mask_token(self.token)})"


SessionObserver = Callable[[AuthSessionState], None]


def mask_token(token: str) -> str:
    """Shorten a token for log output."""
    if len(token) <= 8:
        return "***"
    return f"{token[:4]}...{token[-4:]}"


class SessionStore:
    """
    Process-wide holder of the session token.

    Call initialize() once at startup to rehydrate from durable storage
    before anything reads the state.
    """

    def __init__(self, storage: TokenStorage):
        self._storage = storage
        self._state = AuthSessionState.logged_out()
        self._observers: List[SessionObserver] = []
        self._initialized = False

    def _require_initialized(self):
        if not self._initialized:
            raise RuntimeError("SessionStore not initialized. Call initialize() first.")

    def _set_state(self, state: AuthSessionState):
        """Update in-memory state and notify observers if it changed."""
        if state == self._state:
            return
        self._state = state
        self._notify(state)

    def _notify(self, state: AuthSessionState):
        for observer in list(self._observers):
            try:
                observer(state)
            except Exception as e:
                logger.warning(f"Session observer {observer!r} failed: {e}")

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> AuthSessionState:
        """
        Rehydrate session state from durable storage.

        Safe to call more than once; only the first call reads storage.

        Returns:
            The state after rehydration
        """
        if self._initialized:
            return self._state

        try:
            token = self._storage.get()
        except PersistenceError as e:
            logger.warning(f"Could not read stored session, starting logged out: {e}")
            token = None

        self._state = AuthSessionState.logged_in(token) if token else AuthSessionState.logged_out()
        self._initialized = True
        logger.info(f"Session store initialized: {self._state!r}")
        return self._state

    def login(self, token: str) -> AuthSessionState:
        """
        Persist a token and mark the session as logged in.

        Args:
            token: Token issued by the remote service

        Returns:
            The new LoggedIn state

        Raises:
            ValidationError: If the token is empty
            PersistenceError: If the token could not be written; the
                session is left logged out
        """
        self._require_initialized()
        if not token:
            raise ValidationError("empty_token", "Session token must not be empty")

        try:
            self._storage.set(token)
        except PersistenceError:
            logger.error("Could not persist session token, session left logged out")
            try:
                self._storage.clear()
            except PersistenceError as e:
                logger.warning(f"Could not clear token storage after failed write: {e}")
            self._set_state(AuthSessionState.logged_out())
            raise

        self._set_state(AuthSessionState.logged_in(token))
        logger.info(f"Session logged in: {mask_token(token)}")
        return self._state

    def logout(self):
        """
        Clear the stored token and mark the session as logged out.

        Calling this while already logged out is a no-op.
        """
        self._require_initialized()
        was_logged_in = self._state.is_logged_in

        self._storage.clear()
        self._set_state(AuthSessionState.logged_out())

        if was_logged_in:
            logger.info("Session logged out")

    def current_state(self) -> AuthSessionState:
        """Return the current session state."""
        self._require_initialized()
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self.current_state().is_logged_in

    @property
    def token(self) -> Optional[str]:
        return self.current_state().token

    def subscribe(self, observer: SessionObserver) -> Callable[[], None]:
        """
        Register an observer for session transitions.

        Returns:
            A callable that removes the observer
        """
        self._observers.append(observer)
        return lambda: self.unsubscribe(observer)

    def unsubscribe(self, observer: SessionObserver):
        """Remove an observer; unknown observers are ignored."""
        if observer in self._observers:
            self._observers.remove(observer)

    def teardown(self):
        """Drop observers and require a fresh initialize()."""
        self._observers.clear()
        self._state = AuthSessionState.logged_out()
        self._initialized = False
