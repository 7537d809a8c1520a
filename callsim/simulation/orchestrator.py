"""
Turn-taking orchestrator for simulated pre-procedure calls.

Drives the dialogue between Ava and the patient one utterance at a time.
Each call to advance() produces exactly one turn; the caller decides when to
ask for the next one, so there is never more than one generation in flight
for a conversation.
"""
import logging
import time
import uuid
from typing import Optional, List, Dict, Tuple, Callable

from .models import (
    Role, Turn, PersonaConfig, VoiceConfig, ConversationState,
    ConversationSnapshot, TurnResult
)
from .roles import RoleProfile, role_profiles
from .events import (
    SimulationEventBus, ConversationStartedEvent, TurnCompletedEvent,
    ConversationTerminatedEvent, ConversationStoppedEvent, ErrorOccurredEvent
)
from ..errors import NoActiveConversation, TranscriptionEmpty
from ..infrastructure.llm import SELF, OTHER
from ..infrastructure.data import ConversationRecorder, ConversationRecord, ConversationTurn, AgentInfo
from ..config import MAX_TURNS, TERMINATION_PHRASES, TERMINATION_MAX_LENGTH

logger = logging.getLogger("orchestrator")

STOP_CLOSING_PHRASE = "closing_phrase"
STOP_MAX_TURNS = "max_turns"
STOP_EXPLICIT = "stopped"


def is_closing_utterance(text: str) -> bool:
    """
    True when an assistant utterance ends the call.

    Long utterances that merely mention a closing phrase (e.g. explaining how
    the call will wrap up) do not count.
    """
    lowered = text.lower()
    if len(lowered) >= TERMINATION_MAX_LENGTH:
        return False
    return any(phrase in lowered for phrase in TERMINATION_PHRASES)


def relabel_history(turns: List[Turn], speaker: Role) -> List[Dict[str, str]]:
    """Map the turn log onto the speaker's own point of view (self/other)."""
    return [
        {"role": SELF if turn.role is speaker else OTHER, "content": turn.content}
        for turn in turns
    ]


class ConversationOrchestrator:
    """
    Owns one conversation state at a time and advances it turn by turn.

    Collaborators are injected: a text-completion client with
    complete(system_instruction, turns, temperature=...), and optionally a
    speech gateway (voice mode), a recorder and an event bus.
    Not thread-safe; see ConversationService for concurrent callers.
    """

    def __init__(self,
                 llm_client,
                 speech_gateway=None,
                 recorder: Optional[ConversationRecorder] = None,
                 event_bus: Optional[SimulationEventBus] = None,
                 state: Optional[ConversationState] = None):
        self.llm_client = llm_client
        self.speech_gateway = speech_gateway
        self.recorder = recorder
        self.event_bus = event_bus or SimulationEventBus()
        self.state = state
        self._profiles: Dict[Role, RoleProfile] = role_profiles(state) if state else {}

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def start(self,
              script_text: str,
              persona: PersonaConfig,
              max_turns: int = MAX_TURNS,
              voice_config: Optional[VoiceConfig] = None,
              conversation_id: Optional[str] = None,
              script_ref: Optional[str] = None,
              background_ref: Optional[str] = None) -> TurnResult:
        """
        Begin a new call and return Ava's opening turn.

        Any conversation previously held by this orchestrator is replaced.
        """
        if max_turns < 1:
            raise ValueError(f"max_turns must be at least 1, got {max_turns}")

        if self.state is not None and self.state.active:
            logger.warning(
                "Starting a new conversation replaces active conversation %s", self.state.conversation_id
            )

        self.state = ConversationState(
            conversation_id=conversation_id or uuid.uuid4().hex[:12],
            persona=persona,
            script_text=script_text,
            max_turns=max_turns,
            voice_config=voice_config,
            script_ref=script_ref,
            background_ref=background_ref,
        )
        self._profiles = role_profiles(self.state)

        logger.info(
            "Starting conversation %s (mood=%s, max_turns=%d, voice=%s)",
            self.state.conversation_id, persona.mood.value, max_turns, self.voice_mode
        )
        self.event_bus.emit(ConversationStartedEvent(
            self.state.conversation_id, time.time(), persona.mood.value, max_turns, self.voice_mode
        ))

        return self._step(self.state)

    def advance(self) -> TurnResult:
        """
        Generate the next turn for whichever role speaks next.

        Raises:
            NoActiveConversation: Before start() or after the call has ended
            ProviderError: If the text or speech provider fails (state is unchanged)
        """
        state = self._require_active()
        return self._step(state)

    def respond(self, audio_bytes: bytes, mime_type: str = "audio/wav") -> Tuple[Turn, Optional[TurnResult]]:
        """
        Live mode: a human speaks the patient's part.

        The recording is transcribed into the patient turn, then Ava answers.
        Returns the patient turn and Ava's reply (None if the patient turn
        reached the turn limit).

        Raises:
            NoActiveConversation: Before start() or after the call has ended
            TranscriptionEmpty: Nothing intelligible was said; state is unchanged
            ProviderError: If transcription or generation fails
        """
        state = self._require_active()
        if self.speech_gateway is None:
            raise ValueError("respond() needs a speech gateway")
        if state.next_role is not Role.PATIENT:
            raise ValueError("respond() is only valid while the patient is expected to speak")

        try:
            text = self.speech_gateway.transcribe(audio_bytes, mime_type)
        except Exception as e:
            self._emit_error(state, e, "transcription")
            raise

        text = (text or "").strip()
        if not text:
            raise TranscriptionEmpty()

        patient_turn = Turn(role=Role.PATIENT, content=text)
        self._append(state, patient_turn)

        if not state.active:
            return patient_turn, None
        return patient_turn, self._step(state)

    def stop(self, reason: str = STOP_EXPLICIT) -> Tuple[Turn, ...]:
        """
        Freeze the conversation and return its turn log.

        Does not wait for anything in flight; safe to call repeatedly.
        """
        state = self.state
        if state is None:
            return ()

        if state.deactivate(reason):
            logger.info("Conversation %s stopped after %d turn(s)", state.conversation_id, state.turn_count)
            self.event_bus.emit(ConversationStoppedEvent(
                state.conversation_id, time.time(), state.turn_count, len(state.turns)
            ))
            self._record(state)

        return tuple(state.turns)

    def current_state(self) -> Optional[ConversationSnapshot]:
        """Read-only snapshot, or None if no conversation was ever started."""
        return self.state.snapshot() if self.state else None

    def run(self, on_turn: Optional[Callable[[TurnResult], None]] = None) -> Tuple[Turn, ...]:
        """
        Drive an already started conversation until it ends.

        Args:
            on_turn: Called with each generated turn (e.g. to print it)
        """
        state = self._require_active()
        while state.active:
            result = self._step(state)
            if on_turn:
                on_turn(result)
        return tuple(state.turns)

    @property
    def voice_mode(self) -> bool:
        return (
            self.speech_gateway is not None
            and self.state is not None
            and self.state.voice_config is not None
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_active(self) -> ConversationState:
        if self.state is None:
            raise NoActiveConversation("No conversation has been started.")
        if not self.state.active:
            raise NoActiveConversation(
                f"Conversation {self.state.conversation_id} has ended ({self.state.stop_reason})."
            )
        return self.state

    def _step(self, state: ConversationState) -> TurnResult:
        """Generate, append and evaluate one turn."""
        role = state.next_role
        turn = self._generate_turn(state, role)
        try:
            self._append(state, turn)
        except NoActiveConversation:
            # stop() landed while the turn was being produced; the log stays frozen
            logger.info("Discarding %s turn generated after conversation %s stopped",
                        role.value, state.conversation_id)
            raise
        return TurnResult(
            turn=turn,
            is_active=state.active,
            turn_count=state.turn_count,
            mood=state.persona.mood,
        )

    def _generate_turn(self, state: ConversationState, role: Role) -> Turn:
        profile = self._profiles[role]
        history = relabel_history(state.turns, role)

        try:
            text = self.llm_client.complete(
                profile.system_instruction(), history, temperature=profile.temperature
            )
            text = (text or "").strip()
            audio = None
            if self.voice_mode:
                audio = self.speech_gateway.synthesize(text, profile.voice())
        except Exception as e:
            self._emit_error(state, e, f"{role.value}_generation")
            raise

        logger.info("%s: %s", role.value, text)
        return Turn(role=role, content=text, audio=audio)

    def _append(self, state: ConversationState, turn: Turn) -> None:
        """Append a turn and apply the termination rules for its role."""
        state.append(turn)

        self.event_bus.emit(TurnCompletedEvent(
            state.conversation_id, time.time(), turn.role.value, turn.content,
            len(state.turns) - 1, state.turn_count
        ))

        if turn.role is Role.ASSISTANT:
            # Only Ava can close the call
            if is_closing_utterance(turn.content):
                self._terminate(state, STOP_CLOSING_PHRASE)
        elif state.turn_count >= state.max_turns:
            self._terminate(state, STOP_MAX_TURNS)

    def _terminate(self, state: ConversationState, reason: str) -> None:
        if not state.deactivate(reason):
            return
        logger.info(
            "Conversation %s ended: %s after %d exchange(s)", state.conversation_id, reason, state.turn_count
        )
        self.event_bus.emit(ConversationTerminatedEvent(
            state.conversation_id, time.time(), reason, state.turn_count, len(state.turns)
        ))
        self._record(state)

    def _record(self, state: ConversationState) -> None:
        """Persist the frozen turn log once."""
        if self.recorder is None or state.record_path is not None:
            return
        try:
            state.record_path = self.recorder.save(self._build_record(state))
        except OSError as e:
            logger.error("Failed to record conversation %s: %s", state.conversation_id, e)
            self._emit_error(state, e, "recorder")

    def _build_record(self, state: ConversationState) -> ConversationRecord:
        model = getattr(self.llm_client, "model", "unknown")
        provider = getattr(self.llm_client, "provider", "unknown")
        voices = state.voice_config if self.voice_mode else None

        return ConversationRecord(
            conversation_id=state.conversation_id,
            timestamp=state.turns[-1].timestamp if state.turns else state.started_at,
            record_type="voice_simulation" if voices else "simulation",
            call_script_file=state.script_ref,
            patient_context_file=state.background_ref,
            patient_mood=state.persona.mood.value,
            agents={
                "ava": AgentInfo(model=model, provider=provider, role="Healthcare Assistant",
                                 voice=voices.assistant_voice if voices else None),
                "patient": AgentInfo(model=model, provider=provider, role="Patient",
                                     voice=voices.patient_voice if voices else None),
            },
            messages=[ConversationTurn(**turn.to_message()) for turn in state.turns],
            total_turns=state.turn_count,
            conversation_complete=state.stop_reason != STOP_EXPLICIT,
            stop_reason=state.stop_reason,
        )

    def _emit_error(self, state: ConversationState, error: Exception, component: str) -> None:
        self.event_bus.emit(ErrorOccurredEvent(
            state.conversation_id, time.time(), type(error).__name__, str(error), component
        ))
