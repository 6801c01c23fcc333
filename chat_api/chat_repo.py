from __future__ import annotations

import json
from typing import Protocol

from chat_api.chat_store import ChatRecord, add_chat, list_chats


class ChatRepo(Protocol):
    def save(self, record: ChatRecord) -> ChatRecord: ...

    def list_for_user(self, user_id: str) -> list[ChatRecord]: ...


class InMemoryChatRepo:
    def save(self, record: ChatRecord) -> ChatRecord:
        return add_chat(record)

    def list_for_user(self, user_id: str) -> list[ChatRecord]:
        return list_chats(user_id)


class PostgresChatRepo:
    """
    Minimal Postgres storage for tutoring exchanges.
    Requires DATABASE_URL.
    """

    def __init__(self, database_url: str):
        self.database_url = database_url

    def _connect(self):
        # Import lazily so local dev can run without Postgres deps installed
        # (and only requires psycopg when DATABASE_URL is set).
        import psycopg  # type: ignore
        from psycopg.rows import dict_row  # type: ignore

        return psycopg.connect(self.database_url, row_factory=dict_row)

    def ensure_schema(self) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS chats (
                      id BIGSERIAL PRIMARY KEY,
                      user_id TEXT NOT NULL,
                      message TEXT NOT NULL,
                      response TEXT NOT NULL,
                      metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
                      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
                    );
                    """
                )
                cur.execute("CREATE INDEX IF NOT EXISTS idx_chats_user_id ON chats(user_id);")
            conn.commit()

    def save(self, record: ChatRecord) -> ChatRecord:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO chats (user_id, message, response, metadata)
                    VALUES (%s, %s, %s, %s::jsonb)
                    RETURNING created_at;
                    """,
                    (record.user_id, record.message, record.response, json.dumps(record.metadata)),
                )
                row = cur.fetchone()
            conn.commit()
        if row and row.get("created_at") is not None:
            record.created_at = row["created_at"].isoformat()
        return record

    def list_for_user(self, user_id: str) -> list[ChatRecord]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT user_id, message, response, metadata, created_at
                      FROM chats
                     WHERE user_id = %s
                     ORDER BY id ASC;
                    """,
                    (user_id,),
                )
                rows = cur.fetchall() or []
        return [_row_to_record(r) for r in rows]


def _row_to_record(row: dict) -> ChatRecord:
    metadata = row.get("metadata") or {}
    if isinstance(metadata, str):
        metadata = json.loads(metadata)
    created = row.get("created_at")
    return ChatRecord(
        user_id=row["user_id"],
        message=row.get("message") or "",
        response=row.get("response") or "",
        metadata=metadata,
        created_at=created.isoformat() if hasattr(created, "isoformat") else str(created or ""),
    )


def make_chat_repo(database_url: str | None = None) -> ChatRepo:
    if database_url:
        return PostgresChatRepo(database_url)
    return InMemoryChatRepo()
