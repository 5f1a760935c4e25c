"""
OTP login flow.

State machine for one phone number at a time:

    IDLE -> SENT -> VERIFYING -> VERIFIED
                        |
                        v
                      FAILED  (retry verify, or resend)

Sends are throttled against an absolute deadline (ResendGate). There is one
gate per controller, whichever number it is pointed at. The one-second
countdown shown to the user is derived from that deadline on every tick, so
a late or dropped tick never changes what is allowed.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from .auth_api import AuthAPI
from .errors import (
    InvalidTransitionError,
    RemoteAuthError,
    RequestInProgressError,
    StaleResponseError,
    ThrottledError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_RESEND_COOLDOWN = 60


class OtpState(str, Enum):
    IDLE = "idle"
    SENT = "sent"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    FAILED = "failed"


@dataclass
class ResendGate:
    """Resend is allowed once the clock reaches available_at."""
    available_at: float = 0.0

    def is_open(self, now: float) -> bool:
        return now >= self.available_at

    def seconds_remaining(self, now: float) -> int:
        return max(0, math.ceil(self.available_at - now))

    def reset(self, now: float, cooldown: float):
        self.available_at = now + cooldown


@dataclass(frozen=True)
class OtpSnapshot:
    """What a screen needs to render the OTP form."""
    phone: Optional[str]
    state: OtpState
    reason: Optional[str]
    seconds_remaining: int
    loading: bool


OtpListener = Callable[[OtpSnapshot], None]


class OtpFlowController:
    """
    Drives OTP request, verification and resend for a single phone number.

    Only one request may be outstanding at a time. At most one countdown
    task runs per controller; it is cancelled when it reaches zero, when a
    new send restarts it, or on close().
    """

    def __init__(
        self,
        api: AuthAPI,
        resend_cooldown: float = DEFAULT_RESEND_COOLDOWN,
        tick_interval: float = 1.0,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the controller.

        Args:
            api: Remote authentication client
            resend_cooldown: Seconds between successful sends
            tick_interval: Seconds between countdown ticks
            clock: Wall-clock source, in seconds
        """
        self.api = api
        self.resend_cooldown = resend_cooldown
        self.tick_interval = tick_interval
        self._clock = clock

        self._phone: Optional[str] = None
        self._state = OtpState.IDLE
        self._reason: Optional[str] = None
        self._token: Optional[str] = None
        self._gate = ResendGate()
        self._inflight: Optional[object] = None
        self._countdown = 0
        self._countdown_task: Optional[asyncio.Task] = None
        self._listeners: List[OtpListener] = []

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def phone(self) -> Optional[str]:
        return self._phone

    @property
    def state(self) -> OtpState:
        return self._state

    @property
    def reason(self) -> Optional[str]:
        """Rejection message while FAILED."""
        return self._reason

    @property
    def token(self) -> Optional[str]:
        """Token issued on VERIFIED."""
        return self._token

    @property
    def gate(self) -> ResendGate:
        return self._gate

    @property
    def loading(self) -> bool:
        return self._inflight is not None

    @property
    def seconds_remaining(self) -> int:
        """Seconds until resend is allowed, recomputed from the deadline."""
        return self._gate.seconds_remaining(self._clock())

    @property
    def can_resend(self) -> bool:
        return self._gate.is_open(self._clock())

    @property
    def countdown(self) -> int:
        """Last value published by the countdown timer."""
        return self._countdown

    @property
    def countdown_active(self) -> bool:
        return self._countdown_task is not None and not self._countdown_task.done()

    def snapshot(self) -> OtpSnapshot:
        return OtpSnapshot(
            phone=self._phone,
            state=self._state,
            reason=self._reason,
            seconds_remaining=self.seconds_remaining,
            loading=self.loading,
        )

    def subscribe(self, listener: OtpListener) -> Callable[[], None]:
        """
        Register a listener for state and countdown changes.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: OtpListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self):
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.warning(f"OTP listener {listener!r} failed: {e}")

    # ------------------------------------------------------------------
    # Internal state handling
    # ------------------------------------------------------------------

    def _transition(self, state: OtpState, reason: Optional[str] = None):
        logger.debug(f"OTP {self._phone}: {self._state.value} -> {state.value}")
        self._state = state
        self._reason = reason
        self._notify()

    def _begin_request(self) -> object:
        if self._inflight is not None:
            raise RequestInProgressError()
        request = object()
        self._inflight = request
        return request

    def _release(self, request: object) -> bool:
        """Release the loading guard; False if the request no longer owns it."""
        if self._inflight is not request:
            return False
        self._inflight = None
        return True

    def _start_target(self, phone: str):
        """Point the controller at a new phone number. The gate is kept."""
        if self._phone is not None:
            logger.info(f"OTP target changed from {self._phone} to {phone}")
        self._phone = phone
        self._reason = None
        self._token = None

    # ------------------------------------------------------------------
    # Countdown timer
    # ------------------------------------------------------------------

    def _start_countdown(self):
        self._cancel_countdown()
        self._countdown_task = asyncio.get_running_loop().create_task(self._run_countdown())

    def _cancel_countdown(self):
        if self._countdown_task is not None:
            self._countdown_task.cancel()
            self._countdown_task = None

    async def _run_countdown(self):
        while True:
            self._countdown = self.seconds_remaining
            self._notify()
            if self._countdown <= 0:
                break
            await asyncio.sleep(self.tick_interval)

        if self._countdown_task is asyncio.current_task():
            self._countdown_task = None
        logger.debug(f"Resend available for {self._phone}")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def send(self, phone: str) -> None:
        """
        Request an OTP for a phone number.

        Every send, to any number, is throttled by the same gate. A send to
        a different number than the current target replaces the target only
        once the request succeeds; a failed send leaves the flow untouched.

        Raises:
            ValidationError: If the phone number is empty
            RequestInProgressError: If another request is outstanding
            InvalidTransitionError: If this number is already verified
            ThrottledError: If the resend gate has not opened yet
            StaleResponseError: If the flow was reset while waiting
            RemoteAuthError / NetworkError: If the request failed
        """
        phone = (phone or "").strip()
        if not phone:
            raise ValidationError("missing_phone", "Phone number is required")

        if self._inflight is not None:
            raise RequestInProgressError()

        if phone == self._phone and self._state is OtpState.VERIFIED:
            raise InvalidTransitionError(self._state.value, "send")

        now = self._clock()
        if not self._gate.is_open(now):
            remaining = self._gate.seconds_remaining(now)
            logger.info(f"OTP resend for {phone} throttled, {remaining}s remaining")
            raise ThrottledError(remaining)

        request = self._begin_request()
        self._notify()

        logger.info(f"Sending OTP to {phone}...")
        owned = False
        try:
            await self.api.send_otp(phone)
        finally:
            owned = self._release(request)
            if owned:
                self._notify()

        if not owned:
            logger.warning(f"Discarding stale send-otp response for {phone}")
            raise StaleResponseError(phone)

        if phone != self._phone:
            self._start_target(phone)
        self._gate.reset(self._clock(), self.resend_cooldown)
        self._transition(OtpState.SENT)
        self._start_countdown()

    async def resend(self) -> None:
        """Send a new OTP to the current phone number, subject to the same throttle."""
        if self._phone is None:
            raise InvalidTransitionError(self._state.value, "resend")
        await self.send(self._phone)

    async def verify(self, otp: str) -> str:
        """
        Verify the OTP for the current phone number.

        Returns:
            Session token issued by the service

        Raises:
            InvalidTransitionError: Unless the flow is SENT or FAILED
            ValidationError: If the code is empty
            RequestInProgressError: If another request is outstanding
            RemoteAuthError: If the code was rejected (flow becomes FAILED)
            NetworkError: On transport failure (flow returns to its prior state)
            StaleResponseError: If the flow was reset while waiting
        """
        if self._state not in (OtpState.SENT, OtpState.FAILED):
            raise InvalidTransitionError(self._state.value, "verify")

        otp = (otp or "").strip()
        if not otp:
            raise ValidationError("missing_otp", "OTP is required")

        request = self._begin_request()
        phone = self._phone
        next_state, next_reason = self._state, self._reason
        self._transition(OtpState.VERIFYING)

        logger.info(f"Verifying OTP for {phone}...")
        token = None
        owned = False
        try:
            token = await self.api.verify_otp(phone, otp)
            next_state, next_reason = OtpState.VERIFIED, None
        except RemoteAuthError as e:
            next_state, next_reason = OtpState.FAILED, e.message
            raise
        finally:
            owned = self._release(request)
            if owned and phone == self._phone:
                if next_state is OtpState.VERIFIED:
                    self._token = token
                    self._cancel_countdown()
                self._transition(next_state, next_reason)

        if not owned or phone != self._phone:
            logger.warning(f"Discarding stale verify-otp response for {phone}")
            raise StaleResponseError(phone)

        return token

    def reset(self):
        """
        Abandon the flow: forget the phone number and return to IDLE.

        The resend gate is kept, so a reset does not shorten the wait
        before the next send.
        """
        self._cancel_countdown()
        self._inflight = None
        self._phone = None
        self._state = OtpState.IDLE
        self._reason = None
        self._token = None
        self._countdown = 0
        self._notify()

    async def close(self):
        """Cancel the countdown timer and drop listeners."""
        task = self._countdown_task
        self._cancel_countdown()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._listeners.clear()
