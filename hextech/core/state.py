from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


class Mode(str, Enum):
    GUIDED_QUERY = "guided_query"            # Suggestion bubbles, reply slides in
    TEXT_CHAT = "text_chat"                  # "@ai" mentions in the team chat
    SINGLE_TURN_VOICE = "single_turn_voice"  # Push-to-talk
    MULTI_TURN_VOICE = "multi_turn_voice"    # 30s listening window
    FULL_DUPLEX = "full_duplex"              # Proactive companion

    @property
    def is_voice(self) -> bool:
        return self in (Mode.SINGLE_TURN_VOICE, Mode.MULTI_TURN_VOICE, Mode.FULL_DUPLEX)


class GameContext(str, Enum):
    NORMAL = "NORMAL"
    DEAD = "DEAD"
    SHOPPING = "SHOPPING"
    OBJECTIVE_SPAWN = "OBJECTIVE_SPAWN"


class LogRole(str, Enum):
    SYSTEM = "SYSTEM"
    ASR = "ASR"
    VAD = "VAD"
    NLP = "NLP"
    LLM = "LLM"
    TTS = "TTS"
    USER_ACTION = "USER_ACTION"


class Sender(str, Enum):
    PLAYER = "player"
    SYSTEM = "system"
    ALLY = "ally"
    AI = "ai"


@dataclass
class AIState:
    """Assistant state shown by the overlay.

    Owned by the ModeController; observers only ever get copies.
    """

    is_listening: bool = False
    is_speaking: bool = False
    response: Optional[str] = None
    timer: int = 0
    is_thinking: bool = False

    def copy(self) -> "AIState":
        return replace(self)

    def reset(self) -> None:
        self.is_listening = False
        self.is_speaking = False
        self.response = None
        self.timer = 0
        self.is_thinking = False

    @property
    def is_default(self) -> bool:
        return self == AIState()


@dataclass(frozen=True)
class PipelineLogEntry:
    id: str
    role: LogRole
    content: str
    timestamp: str


@dataclass(frozen=True)
class ChatMessage:
    id: str
    sender: Sender
    text: str
    timestamp: str


@dataclass(frozen=True)
class DuplexScenario:
    trigger: str
    ai: str
    user: str
    reply: str


@dataclass
class SessionRun:
    """One orchestrated flow. Stale once the controller's generation moves on."""

    generation: int
    mode: Mode
    cancelled: bool = False


@dataclass(frozen=True)
class Snapshot:
    """Read-only projection handed to observers."""

    mode: Mode
    game_context: GameContext
    ai_state: AIState
    duplex_active: bool
    logs: tuple[PipelineLogEntry, ...] = ()
    messages: tuple[ChatMessage, ...] = ()
    suggestions: tuple[str, ...] = field(default_factory=tuple)
