from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

import sentry_sdk
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError as PydanticValidationError

from chat_api import background
from chat_api.auth import get_optional_user
from chat_api.chat_repo import ChatRepo, PostgresChatRepo, make_chat_repo
from chat_api.chat_store import ChatRecord
from chat_api.profiles_repo import PostgresProfileRepo, ProfileRepo, make_profile_repo
from tutor.agent import TutorAgent
from tutor.errors import AuthError, NotFoundError, ProviderError, TutorError, ValidationError
from tutor.gemini_client import GeminiClient
from tutor.schemas import (
    ChatRequest,
    Difficulty,
    ErrorResponse,
    TutorContext,
    TutorRequest,
    TutorResponse,
    UserPreferences,
)
from tutor.settings import Settings, configure_logging

logger = logging.getLogger(__name__)

settings = Settings.from_env()
configure_logging(settings.log_level)
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

app = FastAPI(title="AI Tutor Chat API", version="0.1.0")
chat_repo = make_chat_repo(settings.database_url)
profile_repo = make_profile_repo(settings.database_url, profiles_file=settings.profiles_file)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (400, 401, 404, 500, 502)
}

# Free-form profile values mapped onto the agent's difficulty levels.
_DIFFICULTY_ALIASES = {
    "easy": Difficulty.beginner,
    "moderate": Difficulty.intermediate,
    "medium": Difficulty.intermediate,
    "hard": Difficulty.advanced,
}


@app.exception_handler(TutorError)
async def _tutor_error(request: Request, exc: TutorError) -> JSONResponse:
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(Exception)
async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    return _internal_error(exc)


@app.on_event("startup")
def _startup() -> None:
    if isinstance(chat_repo, PostgresChatRepo):
        chat_repo.ensure_schema()
    if isinstance(profile_repo, PostgresProfileRepo):
        profile_repo.ensure_schema()
    if not settings.auth_secret:
        logger.warning("AUTH_SECRET is not set; every chat request will be rejected as unauthorized")
    # Fail at boot, not on the first chat, when the model provider isn't configured.
    app.state.agent = TutorAgent(GeminiClient(settings))


@app.on_event("shutdown")
async def _shutdown() -> None:
    await background.drain()


def require_user(request: Request) -> str:
    user_id = get_optional_user(request, settings.auth_secret)
    if not user_id:
        raise AuthError("Unauthorized")
    return user_id


def get_agent(request: Request) -> TutorAgent:
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise ProviderError("Tutor agent is not configured")
    return agent


def get_chat_repo() -> ChatRepo:
    return chat_repo


def get_profile_repo() -> ProfileRepo:
    return profile_repo


def parse_chat_request(payload: object) -> ChatRequest:
    messages = payload.get("messages") if isinstance(payload, dict) else None
    if not messages:
        raise ValidationError("No messages provided")
    try:
        return ChatRequest.model_validate(payload)
    except PydanticValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationError(f"Invalid request: {where}: {first.get('msg')}") from e


def context_from_preferences(prefs: UserPreferences, topic: str | None = None) -> TutorContext:
    raw = (prefs.difficultyPreference or "").strip().lower()
    try:
        difficulty = Difficulty(raw)
    except ValueError:
        difficulty = _DIFFICULTY_ALIASES.get(raw, Difficulty.beginner)
    return TutorContext(
        topic=topic,
        difficulty=difficulty,
        learningStyle=prefs.learningStyle,
        interests=list(prefs.interests),
    )


async def _run_turn(
    request: Request,
    user_id: str,
    agent: TutorAgent,
    chats: ChatRepo,
    profiles: ProfileRepo,
) -> TutorResponse:
    body = parse_chat_request(await request.json())

    # Repos are synchronous (psycopg); keep the event loop free.
    prefs = await asyncio.to_thread(profiles.get, user_id)
    if prefs is None:
        raise NotFoundError("User not found")

    tutor_request = TutorRequest(
        messages=body.messages,
        context=context_from_preferences(prefs, topic=body.topic),
    )
    logger.info("Chat turn for user %s (%d messages)", user_id, len(body.messages))
    result = await agent.process(tutor_request)

    if result.success:
        record = ChatRecord(
            user_id=user_id,
            message=body.messages[-1].content,
            response=result.responseText,
            metadata={
                "personalization": {
                    "learningStyle": prefs.learningStyle,
                    "difficulty": prefs.difficultyPreference,
                    "interests": prefs.interests,
                }
            },
        )
        background.enqueue_chat_save(chats, record)
    return result


def _internal_error(e: Exception) -> JSONResponse:
    logger.error("Chat error: %s", e, exc_info=e)
    sentry_sdk.capture_exception(e)
    return JSONResponse({"error": str(e) or "An error occurred"}, status_code=500)


async def _stream_text(text: str) -> AsyncIterator[str]:
    for chunk in text.splitlines(keepends=True):
        yield chunk


@app.get("/")
def root() -> dict:
    return {
        "ok": True,
        "service": "ai-tutor-chat",
        "endpoints": ["/health", "/api/chat", "/api/tutor"],
        "docs": "/docs",
    }


@app.get("/health")
def health() -> dict:
    return {"ok": True}


@app.post(
    "/api/chat",
    responses={200: {"content": {"text/plain": {}}}, **ERROR_RESPONSES},
)
async def chat(
    request: Request,
    user_id: str = Depends(require_user),
    agent: TutorAgent = Depends(get_agent),
    chats: ChatRepo = Depends(get_chat_repo),
    profiles: ProfileRepo = Depends(get_profile_repo),
):
    """Run one tutoring turn and stream the reply as plain text."""
    try:
        result = await _run_turn(request, user_id, agent, chats, profiles)
    except TutorError:
        raise
    except Exception as e:
        return _internal_error(e)

    return StreamingResponse(
        _stream_text(result.responseText),
        media_type="text/plain; charset=utf-8",
        headers={
            "Cache-Control": "no-cache",
            "X-Tutor-Success": "true" if result.success else "false",
            "X-Processing-Time-Ms": str(result.metadata.processingTimeMs),
        },
    )


@app.post("/api/tutor", response_model=TutorResponse, responses=ERROR_RESPONSES)
async def tutor(
    request: Request,
    user_id: str = Depends(require_user),
    agent: TutorAgent = Depends(get_agent),
    chats: ChatRepo = Depends(get_chat_repo),
    profiles: ProfileRepo = Depends(get_profile_repo),
):
    """Same turn as /api/chat, returned whole with its metadata."""
    try:
        return await _run_turn(request, user_id, agent, chats, profiles)
    except TutorError:
        raise
    except Exception as e:
        return _internal_error(e)
