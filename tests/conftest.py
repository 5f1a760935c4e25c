"""
Pytest configuration and shared fixtures.

This module provides common fixtures for testing:
- Fake clock for the OTP resend throttle
- Token storage (memory and temporary file)
- A fake remote authentication service behind httpx.MockTransport
- Session store, flows and controller wired to the fakes
"""

import os
import sys
import json
import asyncio
import tempfile
from pathlib import Path
from typing import Generator

import pytest
import httpx

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before imports
os.environ["AUTH_API_BASE_URL"] = "http://auth.test"
os.environ["OTP_RESEND_COOLDOWN_SECONDS"] = "60"

from authflow import (
    AuthAPI,
    CredentialAuthFlow,
    MemoryTokenStorage,
    JsonFileTokenStorage,
    OtpFlowController,
    SessionStore,
)
from authflow.auth_api import LOGIN_PATH, SIGNUP_PATH, SEND_OTP_PATH, VERIFY_OTP_PATH


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture(scope="session")
def test_config():
    """Test configuration values."""
    return {
        "base_url": "http://auth.test",
        "test_phone": "+1555",
        "other_phone": "+1666",
        "test_email": "jane@example.com",
        "test_password": "TestPassword123!",
        "test_user_name": "Jane Test",
        "test_token": "tok_abcdef123456",
    }


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
def memory_storage() -> MemoryTokenStorage:
    return MemoryTokenStorage()


@pytest.fixture
def temp_token_file() -> Generator[Path, None, None]:
    """Path for a token file inside a temporary directory (not created)."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir) / "data" / ".auth_token.json"


@pytest.fixture
def file_storage(temp_token_file) -> JsonFileTokenStorage:
    return JsonFileTokenStorage(temp_token_file)


@pytest.fixture
def session_store(memory_storage) -> SessionStore:
    """An initialized SessionStore over memory storage."""
    store = SessionStore(memory_storage)
    store.initialize()
    return store


# =============================================================================
# Fake Remote Service
# =============================================================================

class FakeAuthService:
    """
    In-process stand-in for the remote authentication service.

    Records every request, answers with queued responses (or defaults), and
    can hold a request open until the test releases it.
    """

    DEFAULT_TOKENS = {
        LOGIN_PATH: "tok_login_0001",
        SIGNUP_PATH: "tok_signup_0001",
        VERIFY_OTP_PATH: "tok_otp_00001",
    }

    def __init__(self):
        self.requests: list[tuple[str, dict]] = []
        self._responses: dict[str, list[tuple[int, object]]] = {}
        self._blockers: dict[str, list[asyncio.Event]] = {}
        self.network_down = False

    def respond(self, path: str, status: int = 200, body: object = None):
        """Queue a response for the next request to path."""
        self._responses.setdefault(path, []).append((status, body))

    def block(self, path: str) -> asyncio.Event:
        """Hold the next request to path open until the returned event is set."""
        event = asyncio.Event()
        self._blockers.setdefault(path, []).append(event)
        return event

    def calls(self, path: str) -> list[dict]:
        return [payload for p, payload in self.requests if p == path]

    def _default_response(self, path: str) -> tuple[int, object]:
        if path == SEND_OTP_PATH:
            return 200, {}
        if path in self.DEFAULT_TOKENS:
            return 200, {"token": self.DEFAULT_TOKENS[path], "user": {"id": 1}}
        return 404, {"message": "Not found"}

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        payload = json.loads(request.content) if request.content else {}
        self.requests.append((path, payload))

        blockers = self._blockers.get(path)
        if blockers:
            await blockers.pop(0).wait()

        if self.network_down:
            raise httpx.ConnectError("Connection refused", request=request)

        queued = self._responses.get(path)
        status, body = queued.pop(0) if queued else self._default_response(path)

        if body is None:
            return httpx.Response(status)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)


@pytest.fixture
def fake_service() -> FakeAuthService:
    return FakeAuthService()


@pytest.fixture
async def auth_api(fake_service, test_config):
    """AuthAPI talking to the fake service."""
    api = AuthAPI(
        test_config["base_url"],
        transport=httpx.MockTransport(fake_service.handler)
    )
    yield api
    await api.close()


@pytest.fixture
def credential_flow(auth_api) -> CredentialAuthFlow:
    return CredentialAuthFlow(auth_api)


@pytest.fixture
async def otp_controller(auth_api, clock):
    """OtpFlowController with a fake clock and fast countdown ticks."""
    controller = OtpFlowController(auth_api, resend_cooldown=60, tick_interval=0.005, clock=clock)
    yield controller
    await controller.close()


# =============================================================================
# Utility Fixtures
# =============================================================================

@pytest.fixture
def wait_until():
    """Poll a predicate while letting the event loop run."""

    async def _wait(predicate, timeout: float = 1.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Condition not met before timeout")
            await asyncio.sleep(0.001)

    return _wait


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
