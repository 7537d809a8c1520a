"""
Conversation service: the operations a thin API layer calls.

Every conversation lives under an identifier with its own orchestrator and
lock, so concurrent advance requests for one call are serialized while
different calls proceed independently. Callers that never pass an
identifier share the "default" slot, where starting a new call replaces the
previous one.

Finished calls stay readable through conversation_state() until more than
keep_finished of them pile up; starting a call then drops the oldest
finished ones. discard_conversation() forgets a call immediately.
"""
import logging
import threading
from typing import Dict, Optional, Tuple, Any, Callable

from .models import PersonaConfig, VoiceConfig, Turn, TurnResult, ConversationSnapshot
from .orchestrator import ConversationOrchestrator
from .events import SimulationEventBus, EventLogger, SimulationMetrics
from .audit import AuditResult, audit_transcript
from ..errors import NoActiveConversation
from ..config import MAX_TURNS, FINISHED_CONVERSATIONS_KEPT

logger = logging.getLogger("conversation_service")

DEFAULT_CONVERSATION_ID = "default"


def read_text_file(path: Optional[str], required: bool = True) -> str:
    """Read a script or background file; optional files may be missing."""
    if not path:
        return ""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read().strip()
    except OSError as e:
        if required:
            raise
        logger.info(f"No patient context at {path} ({e}); using default patient profile")
        return ""


class ConversationService:
    """Registry of conversations keyed by identifier."""

    def __init__(self,
                 llm_client,
                 speech_gateway=None,
                 recorder=None,
                 event_bus: Optional[SimulationEventBus] = None,
                 keep_finished: int = FINISHED_CONVERSATIONS_KEPT):
        self.llm_client = llm_client
        self.speech_gateway = speech_gateway
        self.recorder = recorder
        self.keep_finished = keep_finished

        self.event_bus = event_bus or SimulationEventBus()
        self.event_logger = EventLogger()
        self.metrics = SimulationMetrics()
        self.event_bus.subscribe_all(self.event_logger.handle_event)
        self.event_bus.subscribe_all(self.metrics.handle_event)

        self._orchestrators: Dict[str, ConversationOrchestrator] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, conversation_id: str) -> threading.Lock:
        with self._registry_lock:
            return self._locks.setdefault(conversation_id, threading.Lock())

    def _prune_finished(self) -> None:
        """Forget the oldest finished calls beyond keep_finished; the default slot is never pruned."""
        with self._registry_lock:
            finished = [
                conversation_id for conversation_id, orchestrator in self._orchestrators.items()
                if conversation_id != DEFAULT_CONVERSATION_ID
                and orchestrator.state is not None and not orchestrator.state.active
            ]
            excess = len(finished) - self.keep_finished
            for conversation_id in finished[:max(excess, 0)]:
                self._orchestrators.pop(conversation_id, None)
                self._locks.pop(conversation_id, None)
                logger.debug(f"Pruned finished conversation {conversation_id!r}")

    def _orchestrator_for(self, conversation_id: str) -> ConversationOrchestrator:
        orchestrator = self._orchestrators.get(conversation_id)
        if orchestrator is None:
            raise NoActiveConversation(f"No conversation with id {conversation_id!r}.")
        return orchestrator

    def start_conversation(self,
                           script_ref: str,
                           persona: Optional[PersonaConfig] = None,
                           max_turns: int = MAX_TURNS,
                           conversation_id: str = DEFAULT_CONVERSATION_ID,
                           background_ref: Optional[str] = None,
                           voice_config: Optional[VoiceConfig] = None) -> TurnResult:
        """
        Start a call and return Ava's opening turn.

        Args:
            script_ref: Path to the call script document
            persona: Patient mood and background; background_ref fills an empty background
            max_turns: Exchanges allowed before the call is cut off
            conversation_id: Slot to run the call in
            background_ref: Optional path to a patient background file
            voice_config: Per-role voices; enables voice mode when a speech gateway is configured
        """
        script_text = read_text_file(script_ref)
        persona = persona or PersonaConfig()
        if not persona.background_text and background_ref:
            persona = PersonaConfig(persona.mood_key, read_text_file(background_ref, required=False))

        self._prune_finished()

        with self._lock_for(conversation_id):
            previous = self._orchestrators.get(conversation_id)
            if previous is not None and previous.state is not None and previous.state.active:
                logger.warning(f"Conversation {conversation_id!r} is being replaced by a new call")

            orchestrator = ConversationOrchestrator(
                self.llm_client,
                speech_gateway=self.speech_gateway,
                recorder=self.recorder,
                event_bus=self.event_bus,
            )
            self._orchestrators[conversation_id] = orchestrator
            return orchestrator.start(
                script_text,
                persona,
                max_turns=max_turns,
                voice_config=voice_config,
                conversation_id=conversation_id,
                script_ref=script_ref,
                background_ref=background_ref,
            )

    def advance_conversation(self, conversation_id: str = DEFAULT_CONVERSATION_ID) -> TurnResult:
        with self._lock_for(conversation_id):
            return self._orchestrator_for(conversation_id).advance()

    def respond_conversation(self,
                             audio_bytes: bytes,
                             mime_type: str = "audio/wav",
                             conversation_id: str = DEFAULT_CONVERSATION_ID) -> Tuple[Turn, Optional[TurnResult]]:
        with self._lock_for(conversation_id):
            return self._orchestrator_for(conversation_id).respond(audio_bytes, mime_type)

    def stop_conversation(self, conversation_id: str = DEFAULT_CONVERSATION_ID) -> Tuple[Turn, ...]:
        # No lock: stop must not wait for a generation in flight
        orchestrator = self._orchestrators.get(conversation_id)
        if orchestrator is None:
            return ()
        return orchestrator.stop()

    def conversation_state(self, conversation_id: str = DEFAULT_CONVERSATION_ID) -> Optional[ConversationSnapshot]:
        orchestrator = self._orchestrators.get(conversation_id)
        return orchestrator.current_state() if orchestrator else None

    def run_conversation(self,
                         conversation_id: str = DEFAULT_CONVERSATION_ID,
                         on_turn: Optional[Callable[[TurnResult], None]] = None) -> Tuple[Turn, ...]:
        """Advance a started call until it ends."""
        with self._lock_for(conversation_id):
            return self._orchestrator_for(conversation_id).run(on_turn)

    def discard_conversation(self, conversation_id: str) -> None:
        """Forget a finished call."""
        with self._registry_lock:
            self._orchestrators.pop(conversation_id, None)
            self._locks.pop(conversation_id, None)

    @staticmethod
    def audit_transcript(transcript: Dict[str, Any], script_document: str) -> AuditResult:
        return audit_transcript(transcript, script_document)
