"""
Shared pytest fixtures and configuration for the entire test suite.
Applies to all subdirectories: unit/, api/
"""

import sys
import os
from types import SimpleNamespace
import pytest

# ── Ensure backend is importable from every pytest session ──────────────────
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "backend"))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

# Minimal env so that Pydantic Settings validates without a real key
os.environ.setdefault("OPENAI_API_KEY", "sk-test-key-for-unit-tests-only")


class FakeChatModel:
    """Scripted stand-in for a LangChain chat model.

    Each entry in *responses* is either a string (returned as the message
    content) or an exception instance (raised).  The last entry repeats once
    the script runs out.  Every call's messages are recorded.
    """

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        index = min(len(self.calls) - 1, len(self.responses) - 1)
        item = self.responses[index]
        if isinstance(item, BaseException):
            raise item
        return SimpleNamespace(content=item)

    @property
    def system_prompts(self):
        return [call[0].content for call in self.calls]

    @property
    def user_prompts(self):
        return [call[1].content for call in self.calls]


class FakeStatusError(Exception):
    """Transport error carrying an HTTP status, like openai.APIStatusError."""

    def __init__(self, status_code, message="fake transport error"):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code


@pytest.fixture
def fake_llm():
    """Factory fixture: ``fake_llm(["{...}", ...])`` -> FakeChatModel."""
    return FakeChatModel


@pytest.fixture
def status_error():
    """Factory fixture: ``status_error(429)`` -> exception with status_code."""
    return FakeStatusError


# ── FastAPI TestClient fixture ────────────────────────────────────────────────

@pytest.fixture(scope="session")
def app_client():
    """Return a FastAPI TestClient for the full application."""
    from fastapi.testclient import TestClient
    from app.main import app
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
