from __future__ import annotations

import logging

from fastapi import APIRouter, Query, WebSocket

from chat_hub.api.middleware.correlation_id import correlation_scope
from chat_hub.application.exceptions import AppError, AuthError
from chat_hub.infrastructure.ws.connection import Connection
from chat_hub.infrastructure.ws.hub import ChatHub
from chat_hub.infrastructure.ws.protocol import ErrorOut, encode

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

AUTH_FAILED = 4001
INTERNAL_ERROR = 1011


def _credential(token: str | None, authorization: str | None) -> str | None:
    if token:
        return token
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if value and scheme.lower() == "bearer":
        return value.strip()
    return authorization.strip()


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str | None = Query(None),
) -> None:
    hub: ChatHub = websocket.app.state.hub
    credential = _credential(token, websocket.headers.get("authorization"))

    # Accept first so the client can read why it is being turned away.
    await websocket.accept()
    try:
        identity = await hub.authenticate(credential)
    except AppError as exc:
        logger.info("WS auth rejected: %s", exc.detail)
        code = AUTH_FAILED if isinstance(exc, AuthError) else INTERNAL_ERROR
        await websocket.send_text(encode(ErrorOut(message=exc.detail)))
        await websocket.close(code=code, reason=exc.detail)
        return

    connection = Connection(websocket, identity)
    with correlation_scope(connection.connection_id):
        await hub.manager.connect(connection)
        try:
            await hub.dispatcher.greet(connection)
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                # binary frames carry the same JSON envelopes as text frames
                raw = frame.get("text")
                if raw is None:
                    raw = frame.get("bytes") or b""
                await hub.dispatcher.dispatch(connection, raw)
        except Exception:
            if connection.is_closed:
                # evicted by the liveness probe while we were reading
                logger.debug("WS read ended after eviction for %s", identity.id)
            else:
                logger.exception("WS error for %s", identity.id)
        finally:
            await hub.manager.disconnect(connection)