import asyncio
from dataclasses import asdict

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from loguru import logger

from core.state import Snapshot

router = APIRouter()

# Snapshots buffered per stream client before the oldest is dropped
STREAM_BACKLOG = 100


def serialize_snapshot(snapshot: Snapshot) -> dict:
    return jsonable_encoder(asdict(snapshot))


@router.get("/state")
async def get_state(request: Request):
    """Full observation snapshot: mode, assistant state, logs, chat."""
    return serialize_snapshot(request.app.state.controller.snapshot())


@router.get("/logs")
async def get_logs(request: Request):
    controller = request.app.state.controller
    return {"logs": jsonable_encoder([asdict(e) for e in controller.log.entries])}


@router.get("/messages")
async def get_messages(request: Request):
    controller = request.app.state.controller
    return {"messages": jsonable_encoder([asdict(m) for m in controller.chat.messages])}


@router.get("/suggestions")
async def get_suggestions(request: Request):
    """Guided queries for the current game context."""
    controller = request.app.state.controller
    return {
        "game_context": controller.game_context.value,
        "suggestions": list(controller.suggestions),
    }


@router.websocket("/stream")
async def stream(websocket: WebSocket):
    """Push a snapshot to the client after every state change."""
    controller = websocket.app.state.controller
    await websocket.accept()

    queue: asyncio.Queue = asyncio.Queue(maxsize=STREAM_BACKLOG)

    def push(snapshot: Snapshot):
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(snapshot)

    unsubscribe = controller.subscribe(push)
    try:
        await websocket.send_json(serialize_snapshot(controller.snapshot()))
        while True:
            snapshot = await queue.get()
            await websocket.send_json(serialize_snapshot(snapshot))
    except WebSocketDisconnect:
        logger.debug("Stream client disconnected.")
    finally:
        unsubscribe()
