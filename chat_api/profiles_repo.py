from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from tutor.schemas import UserPreferences

logger = logging.getLogger(__name__)


class ProfileRepo(Protocol):
    def get(self, user_id: str) -> UserPreferences | None: ...


class InMemoryProfileRepo:
    """
    Read-only profiles held in memory.

    Seeded from a JSON file (PROFILES_FILE) shaped like
    {"<user id>": {"learningStyle": ..., "difficultyPreference": ..., "interests": [...]}}.
    """

    def __init__(self, profiles: dict[str, UserPreferences] | None = None) -> None:
        self._profiles: dict[str, UserPreferences] = dict(profiles or {})

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryProfileRepo":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected an object keyed by user id")
        profiles = {str(uid): UserPreferences.model_validate(prefs) for uid, prefs in data.items()}
        logger.info("Loaded %d profiles from %s", len(profiles), path)
        return cls(profiles)

    def get(self, user_id: str) -> UserPreferences | None:
        return self._profiles.get(user_id)


class PostgresProfileRepo:
    """
    Learner preferences keyed by user id.
    Requires DATABASE_URL. Rows are written by the account service.
    """

    def __init__(self, database_url: str):
        self.database_url = database_url

    def _connect(self):
        import psycopg  # type: ignore
        from psycopg.rows import dict_row  # type: ignore

        return psycopg.connect(self.database_url, row_factory=dict_row)

    def ensure_schema(self) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS user_profiles (
                      user_id TEXT PRIMARY KEY,
                      learning_style TEXT,
                      difficulty_preference TEXT,
                      interests JSONB NOT NULL DEFAULT '[]'::jsonb,
                      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
                    );
                    """
                )
            conn.commit()

    def get(self, user_id: str) -> UserPreferences | None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT learning_style, difficulty_preference, interests
                      FROM user_profiles
                     WHERE user_id = %s;
                    """,
                    (user_id,),
                )
                row = cur.fetchone()
        if not row:
            return None
        interests = row.get("interests") or []
        if isinstance(interests, str):
            interests = json.loads(interests)
        return UserPreferences(
            learningStyle=row.get("learning_style"),
            difficultyPreference=row.get("difficulty_preference"),
            interests=[str(i) for i in interests],
        )


def make_profile_repo(database_url: str | None = None, *, profiles_file: str | None = None) -> ProfileRepo:
    if database_url:
        return PostgresProfileRepo(database_url)
    if profiles_file:
        return InMemoryProfileRepo.from_file(profiles_file)
    logger.warning("No DATABASE_URL or PROFILES_FILE set; every chat will get 404 until profiles exist")
    return InMemoryProfileRepo()
