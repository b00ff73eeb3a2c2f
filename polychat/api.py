"""polychat/api.py

FastAPI HTTP and WebSocket interface for the chat orchestrator.

Endpoints:
  GET    /health             liveness probe
  POST   /api/chat           process one message, returns {text, links}
  GET    /api/chat/history   the session's turns, oldest first
  DELETE /api/chat/history   clear the session's turns
  GET    /api/search         run the web search tier directly
  WS     /ws                 duplex chat; one conversation per connection

HTTP callers pick their conversation with the ``X-Session-ID`` header.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Literal

import uvicorn
from fastapi import APIRouter, FastAPI, Header, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from polychat import __version__
from polychat.chat import ChatOrchestrator
from polychat.config import ChatSettings, get_settings
from polychat.errors import MessageProcessingError
from polychat.memory import ConversationStore, SessionRegistry
from polychat.models import Location
from polychat.search import SearchProvider

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
logger = logging.getLogger("polychat.api")

# ---------------------------------------------------------------------------
# Thread pool for running the synchronous orchestrator
# ---------------------------------------------------------------------------
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="orchestrator")

DEFAULT_SESSION = "default"
WS_ERROR_MESSAGE = "Error processing your request"

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class LocationPayload(BaseModel):
    latitude: float
    longitude: float
    address: str | None = None

    def to_location(self) -> Location:
        return Location(self.latitude, self.longitude, self.address)


class ChatRequest(BaseModel):
    # Optional so a missing message gets the 400 body below rather than a 422.
    message: str | None = None
    language: str | None = None
    location: LocationPayload | None = None


class ChatEnvelope(BaseModel):
    """Inbound WebSocket frame."""

    type: Literal["chat"]
    message: str = Field(..., min_length=1)
    language: str | None = None
    location: LocationPayload | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _run_blocking(func: Any, *args: Any, **kwargs: Any) -> Any:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_executor, partial(func, *args, **kwargs))


async def _process(
    orchestrator: ChatOrchestrator,
    message: str,
    language: str | None,
    location: LocationPayload | None,
    history: ConversationStore,
) -> dict[str, Any]:
    response = await _run_blocking(
        orchestrator.process_message,
        message,
        language,
        location.to_location() if location else None,
        history=history,
    )
    return response.to_dict()


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

router = APIRouter()


@router.get("/health", tags=["meta"])
async def health(request: Request) -> dict[str, str]:
    """Liveness probe."""
    return {
        "status": "ok",
        "server": "polychat",
        "provider": request.app.state.orchestrator.provider_id,
    }


@router.post("/api/chat", tags=["chat"])
async def chat(
    body: ChatRequest,
    request: Request,
    x_session_id: str = Header(DEFAULT_SESSION),
) -> Any:
    """Process one chat message within the caller's session.

    Args:
        body: JSON body with ``message`` and optional ``language``/``location``.
        request: Used to reach the app's orchestrator and session registry.
        x_session_id: Conversation key; all callers omitting it share one.

    Returns:
        ``{text, links}`` on success, or a coarse error body.
    """
    if not body.message:
        return JSONResponse(status_code=400, content={"error": "Message is required"})

    state = request.app.state
    history = state.sessions.get(x_session_id)
    try:
        return await _process(
            state.orchestrator, body.message, body.language, body.location, history
        )
    except MessageProcessingError as exc:
        logger.error("Error in chat route: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to process chat message", "details": str(exc)},
        )


@router.get("/api/chat/history", tags=["chat"])
async def get_history(
    request: Request, x_session_id: str = Header(DEFAULT_SESSION)
) -> list[dict[str, str]]:
    """Return the session's retained turns, oldest first."""
    store = request.app.state.sessions.peek(x_session_id)
    if store is None:
        return []
    return [turn.to_dict() for turn in store.get_all()]


@router.delete("/api/chat/history", tags=["chat"])
async def clear_history(
    request: Request, x_session_id: str = Header(DEFAULT_SESSION)
) -> dict[str, str]:
    """Empty the session's conversation history."""
    request.app.state.sessions.clear(x_session_id)
    return {"message": "Conversation history cleared"}


@router.get("/api/search", tags=["search"])
async def search(
    request: Request,
    query: str | None = Query(None),
    language: str = Query("en"),
) -> Any:
    """Run the search tier directly and return its evidence bundle."""
    if not query:
        return JSONResponse(status_code=400, content={"error": "Search query is required"})

    evidence = await _run_blocking(request.app.state.search_provider.search, query, language)
    return evidence.to_dict()


@router.websocket("/ws")
async def chat_socket(websocket: WebSocket) -> None:
    """Duplex chat channel. Malformed frames are answered, never fatal."""
    await websocket.accept()
    state = websocket.app.state
    session_id = f"ws-{uuid.uuid4().hex}"
    history = state.sessions.get(session_id)
    logger.info("Client connected: %s", session_id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await websocket.send_json(
                await _handle_frame(state.orchestrator, raw, history)
            )
    except WebSocketDisconnect:
        logger.info("Client disconnected: %s", session_id)
    finally:
        state.sessions.discard(session_id)


async def _handle_frame(
    orchestrator: ChatOrchestrator, raw: str | bytes, history: ConversationStore
) -> dict[str, Any]:
    try:
        envelope = ChatEnvelope.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Rejected WebSocket frame: %s", exc.errors(include_url=False))
        return {"type": "error", "message": WS_ERROR_MESSAGE}

    try:
        data = await _process(
            orchestrator, envelope.message, envelope.language, envelope.location, history
        )
    except MessageProcessingError as exc:
        logger.error("Error processing message: %s", exc)
        return {"type": "error", "message": WS_ERROR_MESSAGE}
    return {"type": "chat_response", "data": data}


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------


def create_app(
    settings: ChatSettings | None = None,
    *,
    orchestrator: ChatOrchestrator | None = None,
    sessions: SessionRegistry | None = None,
) -> FastAPI:
    """Build the application with its orchestrator and session registry.

    Args:
        settings: Defaults to the process settings.
        orchestrator: Prebuilt orchestrator; built from settings when omitted.
        sessions: Prebuilt registry; sized from settings when omitted.
    """
    if settings is None:
        settings = get_settings()
    if orchestrator is None:
        orchestrator = ChatOrchestrator.from_settings(settings)
    if sessions is None:
        sessions = SessionRegistry(settings.max_history_length, settings.max_sessions)

    app = FastAPI(
        title="polychat",
        version=__version__,
        description="Multilingual chat orchestration with optional web search grounding.",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.orchestrator = orchestrator
    app.state.search_provider = orchestrator.search_provider
    app.state.sessions = sessions
    app.include_router(router)
    return app


def run_api() -> None:
    """Start the FastAPI server via uvicorn."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    logger.info("Starting polychat API on %s:%d", settings.api_host, settings.api_port)
    uvicorn.run(
        "polychat.api:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    run_api()
