from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field


def _env(name: str, default: str | None = None) -> str | None:
    val = os.environ.get(name)
    if val is None or val.strip() == "":
        return default
    return val


def _csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class Settings:
    """
    Process configuration, read from the environment.

    Blank variables are treated as unset so `FOO=` in a .env file falls back
    to the default instead of an empty string.
    """

    gemini_model: str = "gemini-1.5-flash"
    google_api_key: str | None = None
    google_cloud_project: str | None = None
    google_cloud_location: str = "us-central1"
    database_url: str | None = None
    profiles_file: str | None = None
    auth_secret: str | None = None
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    sentry_dsn: str | None = None
    port: int = 8080

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            gemini_model=_env("GEMINI_MODEL", "gemini-1.5-flash"),
            # GOOGLE_AI_API_KEY is what the web app deploys with; GOOGLE_API_KEY is the SDK's own name.
            google_api_key=_env("GOOGLE_AI_API_KEY") or _env("GOOGLE_API_KEY"),
            google_cloud_project=_env("GOOGLE_CLOUD_PROJECT"),
            google_cloud_location=_env("GOOGLE_CLOUD_LOCATION", "us-central1"),
            database_url=_env("DATABASE_URL"),
            profiles_file=_env("PROFILES_FILE"),
            auth_secret=_env("AUTH_SECRET"),
            cors_origins=_csv(_env("CORS_ORIGINS")) or ["*"],
            log_level=(_env("LOG_LEVEL", "INFO") or "INFO").upper(),
            sentry_dsn=_env("SENTRY_DSN"),
            port=int(_env("PORT", "8080") or "8080"),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
