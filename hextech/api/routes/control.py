from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.routes.dashboard import serialize_snapshot
from core.state import GameContext, Mode

router = APIRouter()


class ModeUpdate(BaseModel):
    mode: Mode


class GameContextUpdate(BaseModel):
    game_context: GameContext


class ChatInput(BaseModel):
    text: str


class VoiceTrigger(BaseModel):
    active: bool


@router.put("/mode")
async def set_mode(body: ModeUpdate, request: Request):
    """Switch interaction mode (full session reset)."""
    controller = request.app.state.controller
    controller.set_mode(body.mode)
    return serialize_snapshot(controller.snapshot())


@router.put("/game-context")
async def set_game_context(body: GameContextUpdate, request: Request):
    controller = request.app.state.controller
    controller.set_game_context(body.game_context)
    return serialize_snapshot(controller.snapshot())


@router.post("/messages")
async def send_message(body: ChatInput, request: Request):
    """Chat input or a clicked suggestion bubble, depending on mode."""
    controller = request.app.state.controller
    task = controller.send_message(body.text)
    return {"session_started": task is not None, "snapshot": serialize_snapshot(controller.snapshot())}


@router.post("/voice")
async def trigger_voice(body: VoiceTrigger, request: Request):
    """Mic button press (active=true) or release (active=false)."""
    controller = request.app.state.controller
    task = controller.trigger_voice(body.active)
    return {"session_started": task is not None, "snapshot": serialize_snapshot(controller.snapshot())}


@router.post("/duplex")
async def toggle_duplex(request: Request):
    controller = request.app.state.controller
    active = controller.toggle_duplex()
    return {"duplex_active": active, "snapshot": serialize_snapshot(controller.snapshot())}


@router.post("/interrupt")
async def interrupt(request: Request):
    """Barge-in. Ignored unless the assistant is speaking in duplex mode."""
    controller = request.app.state.controller
    accepted = controller.interrupt()
    return {"accepted": accepted, "snapshot": serialize_snapshot(controller.snapshot())}
