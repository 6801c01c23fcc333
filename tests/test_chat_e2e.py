"""End-to-end chat turns, including the background save of each exchange.

These run the app on the test's own event loop (httpx ASGITransport) so the
fire-and-forget save task can be awaited with `background.drain()`.
"""

import asyncio
import logging
import threading
import time
from unittest.mock import patch

import httpx
import pytest

from chat_api import background
from chat_api.main import get_chat_repo, get_profile_repo
from tutor.schemas import UserPreferences

QUESTION = {"messages": [{"role": "user", "content": "What is a derivative?"}]}


@pytest.fixture
async def async_client(api_app):
    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class FailingChatRepo:
    def save(self, record):
        raise RuntimeError("database is down")

    def list_for_user(self, user_id):
        return []


class GatedChatRepo:
    """Blocks in save() until released, like a slow database."""

    def __init__(self):
        self.gate = threading.Event()
        self.saved = []

    def save(self, record):
        self.gate.wait(timeout=5)
        self.saved.append(record)
        return record

    def list_for_user(self, user_id):
        return list(self.saved)


class SlowProfileRepo:
    """A profile store whose lookups block the calling thread."""

    def __init__(self, delay: float):
        self.delay = delay

    def get(self, user_id):
        time.sleep(self.delay)
        return UserPreferences(learningStyle="visual", difficultyPreference="moderate", interests=["math"])


async def test_derivative_question_end_to_end(async_client, auth_headers, chats):
    response = await async_client.post("/api/tutor", json=QUESTION, headers=auth_headers)
    await background.drain()

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["responseText"]
    assert 0 <= len(data["metadata"]["suggestedNextSteps"]) <= 3

    saved = chats.list_for_user("user-1")
    assert len(saved) == 1
    assert saved[0].message == "What is a derivative?"
    assert saved[0].response == data["responseText"]
    assert saved[0].metadata["personalization"]["learningStyle"] == "visual"


async def test_streamed_chat_is_saved(async_client, auth_headers, chats, fake_client):
    response = await async_client.post("/api/chat", json=QUESTION, headers=auth_headers)
    await background.drain()

    assert response.status_code == 200
    assert response.text == fake_client.reply
    [record] = chats.list_for_user("user-1")
    assert record.response == fake_client.reply


async def test_save_failure_does_not_affect_response(async_client, auth_headers, api_app, fake_client, caplog):
    api_app.dependency_overrides[get_chat_repo] = lambda: FailingChatRepo()

    with patch("chat_api.background.sentry_sdk.capture_exception") as capture:
        with caplog.at_level(logging.ERROR, logger="chat_api.background"):
            response = await async_client.post("/api/chat", json=QUESTION, headers=auth_headers)
            await background.drain()

    assert response.status_code == 200
    assert response.text == fake_client.reply
    assert "Error saving chat to database" in caplog.text
    assert "database is down" in caplog.text
    capture.assert_called_once()


async def test_slow_store_does_not_delay_response(async_client, auth_headers, api_app):
    repo = GatedChatRepo()
    api_app.dependency_overrides[get_chat_repo] = lambda: repo

    response = await async_client.post("/api/chat", json=QUESTION, headers=auth_headers)

    assert response.status_code == 200
    assert repo.saved == []

    repo.gate.set()
    await background.drain()
    assert len(repo.saved) == 1


async def test_slow_profile_lookup_does_not_block_event_loop(async_client, auth_headers, api_app):
    api_app.dependency_overrides[get_profile_repo] = lambda: SlowProfileRepo(delay=0.5)
    ticks = []

    async def ticker():
        while True:
            ticks.append(time.monotonic())
            await asyncio.sleep(0.05)

    task = asyncio.create_task(ticker())
    try:
        response = await async_client.post("/api/chat", json=QUESTION, headers=auth_headers)
        await background.drain()
    finally:
        task.cancel()

    assert response.status_code == 200
    gaps = [b - a for a, b in zip(ticks, ticks[1:])]
    assert len(ticks) >= 5
    assert max(gaps) < 0.2
