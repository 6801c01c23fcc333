# tests/conftest.py
"""Pytest fixtures shared by the tutor and chat API tests.

The API module reads its settings at import time, so the environment is
pinned here before anything imports `chat_api.main`.
"""

import os

os.environ["AUTH_SECRET"] = "api-test-secret-0123456789abcdef"  # matches fakes.TEST_SECRET
os.environ.pop("DATABASE_URL", None)
os.environ.pop("SENTRY_DSN", None)
os.environ.pop("PROFILES_FILE", None)

import pytest
from fastapi.testclient import TestClient

from chat_api.auth import create_session_token
from chat_api.chat_repo import InMemoryChatRepo
from chat_api.chat_store import clear_chats
from chat_api.profiles_repo import InMemoryProfileRepo
from tutor.agent import TutorAgent
from tutor.schemas import UserPreferences

from fakes import TEST_SECRET, FakeCompletionClient


@pytest.fixture
def fake_client():
    return FakeCompletionClient()


@pytest.fixture
def agent(fake_client):
    return TutorAgent(fake_client)


@pytest.fixture
def profiles():
    return InMemoryProfileRepo(
        {
            "user-1": UserPreferences(
                learningStyle="visual",
                difficultyPreference="moderate",
                interests=["math"],
            )
        }
    )


@pytest.fixture
def chats():
    clear_chats()
    yield InMemoryChatRepo()
    clear_chats()


@pytest.fixture
def api_app(agent, profiles, chats):
    """The FastAPI app with the agent and repos swapped for test doubles."""
    from chat_api.main import app, get_agent, get_chat_repo, get_profile_repo

    app.dependency_overrides[get_agent] = lambda: agent
    app.dependency_overrides[get_profile_repo] = lambda: profiles
    app.dependency_overrides[get_chat_repo] = lambda: chats
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(api_app):
    """Create test client (startup events are not run)."""
    return TestClient(api_app)


@pytest.fixture
def auth_headers():
    token = create_session_token("user-1", TEST_SECRET)
    return {"Authorization": f"Bearer {token}"}
