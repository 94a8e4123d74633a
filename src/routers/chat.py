"""Chat router: streaming tool-calling assistant endpoint."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from src.hotel_assistant import ChatOrchestrator, ValidationError, parse_chat_messages, sse_frames

from .auth import AdminAuthenticator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


@router.post("")
async def chat(request: Request):
    """Stream the assistant's answer as Server-Sent Events.

    Body: ``{"messages": [{"role": "user" | "assistant", "content": str}, ...]}``;
    the last message is the new question. Malformed bodies get a 400 JSON error
    and no stream.
    """
    authenticator: AdminAuthenticator = request.app.state.authenticator
    denied = authenticator.authenticate(request)
    if denied is not None:
        return denied

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return JSONResponse(status_code=400, content={"error": "Request body must be JSON"})
    messages = body.get("messages") if isinstance(body, dict) else None
    try:
        history, latest = parse_chat_messages(messages)
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    orchestrator: ChatOrchestrator = request.app.state.orchestrator
    logger.info("Chat request with %d prior turn(s)", len(history))
    return StreamingResponse(
        sse_frames(orchestrator.stream(history, latest)),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
