from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ChatRecord:
    user_id: str
    message: str
    response: str
    metadata: dict[str, Any] = field(default_factory=dict)  # {"personalization": {...}}
    created_at: str = field(default_factory=_now_iso)


# Dev storage: in-memory, lost on restart, and only the most recent exchanges
# are kept. Set DATABASE_URL for real persistence.
MAX_STORED_CHATS = 1_000
_STORE: deque[ChatRecord] = deque(maxlen=MAX_STORED_CHATS)


def add_chat(record: ChatRecord) -> ChatRecord:
    _STORE.append(record)
    return record


def list_chats(user_id: str) -> list[ChatRecord]:
    return [rec for rec in _STORE if rec.user_id == user_id]


def clear_chats() -> None:
    _STORE.clear()
