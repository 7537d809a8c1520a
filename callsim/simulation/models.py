"""
Data models for the call simulation.
"""
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Tuple

from ..errors import NoActiveConversation


class Role(str, Enum):
    """The two parties on a simulated call."""
    ASSISTANT = "assistant"
    PATIENT = "patient"

    @property
    def opposite(self) -> "Role":
        return Role.PATIENT if self is Role.ASSISTANT else Role.ASSISTANT

    @classmethod
    def parse(cls, value: str) -> "Role":
        """Parse a persisted role name; older transcripts call the assistant "ava"."""
        value = (value or "").strip().lower()
        if value == "ava":
            return cls.ASSISTANT
        return cls(value)


class Mood(str, Enum):
    """Patient moods with a dedicated behavior template."""
    COOPERATIVE = "cooperative"
    ANXIOUS = "anxious"
    CONFUSED = "confused"
    IRRITABLE = "irritable"
    CALM = "calm"

    @classmethod
    def parse(cls, key: Optional[str]) -> "Mood":
        """Unknown keys fall back to cooperative."""
        try:
            return cls((key or "").strip().lower())
        except ValueError:
            return cls.COOPERATIVE


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Turn:
    """One role's single utterance. Insertion order in the turn log is the dialogue."""
    role: Role
    content: str
    timestamp: str = field(default_factory=utc_timestamp)
    audio: Optional[bytes] = field(default=None, repr=False, compare=False)

    def to_message(self) -> dict:
        return {"role": self.role.value, "content": self.content, "timestamp": self.timestamp}


@dataclass(frozen=True)
class PersonaConfig:
    """Patient behavior for one conversation."""
    mood_key: str = Mood.COOPERATIVE.value
    background_text: str = ""

    @property
    def mood(self) -> Mood:
        return Mood.parse(self.mood_key)


@dataclass(frozen=True)
class VoiceConfig:
    """Per-role TTS voice identifiers."""
    assistant_voice: str
    patient_voice: str

    def voice_for(self, role: Role) -> str:
        return self.assistant_voice if role is Role.ASSISTANT else self.patient_voice


@dataclass(frozen=True)
class ConversationSnapshot:
    """Read-only view of a conversation."""
    conversation_id: str
    turns: Tuple[Turn, ...]
    active: bool
    turn_count: int
    max_turns: int
    mood: Mood
    voice_config: Optional[VoiceConfig]
    stop_reason: Optional[str]
    record_path: Optional[str]

    @property
    def total_messages(self) -> int:
        return len(self.turns)


@dataclass
class ConversationState:
    """Mutable state of one simulated call. Only the orchestrator writes to it."""
    conversation_id: str
    persona: PersonaConfig
    script_text: str
    max_turns: int
    voice_config: Optional[VoiceConfig] = None
    script_ref: Optional[str] = None
    background_ref: Optional[str] = None
    turns: List[Turn] = field(default_factory=list)
    active: bool = True
    turn_count: int = 0
    started_at: str = field(default_factory=utc_timestamp)
    stop_reason: Optional[str] = None
    record_path: Optional[str] = None
    # Guards turns, turn_count and active against a concurrent stop
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    @property
    def next_role(self) -> Role:
        """The assistant opens the call; afterwards roles alternate."""
        if not self.turns:
            return Role.ASSISTANT
        return self.turns[-1].role.opposite

    def append(self, turn: Turn) -> None:
        """
        Add a turn to an active call; a patient turn completes one exchange.

        Raises:
            NoActiveConversation: The call ended before the turn could be added
            ValueError: The turn is out of order
        """
        with self._lock:
            if not self.active:
                raise NoActiveConversation(f"Conversation {self.conversation_id} has ended ({self.stop_reason}).")
            if turn.role is not self.next_role:
                raise ValueError(f"Out-of-order turn: expected {self.next_role.value}, got {turn.role.value}")
            self.turns.append(turn)
            if turn.role is Role.PATIENT:
                self.turn_count += 1

    def deactivate(self, reason: str) -> bool:
        """Mark the call as over. Returns False if it had already ended."""
        with self._lock:
            if not self.active:
                return False
            self.active = False
            self.stop_reason = reason
            return True

    def snapshot(self) -> ConversationSnapshot:
        with self._lock:
            return ConversationSnapshot(
                conversation_id=self.conversation_id,
                turns=tuple(self.turns),
                active=self.active,
                turn_count=self.turn_count,
                max_turns=self.max_turns,
                mood=self.persona.mood,
                voice_config=self.voice_config,
                stop_reason=self.stop_reason,
                record_path=self.record_path,
            )


@dataclass(frozen=True)
class TurnResult:
    """What the orchestrator hands back after generating a turn."""
    turn: Turn
    is_active: bool
    turn_count: int
    mood: Mood

    @property
    def speaker(self) -> Role:
        return self.turn.role

    @property
    def text(self) -> str:
        return self.turn.content

    @property
    def audio(self) -> Optional[bytes]:
        return self.turn.audio
