from __future__ import annotations

import uvicorn

from tutor.settings import Settings


def main() -> None:
    settings = Settings.from_env()
    uvicorn.run(
        "chat_api.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
