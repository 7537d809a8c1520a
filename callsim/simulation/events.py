"""
Event-driven notifications for the call simulator.
"""
import logging
from typing import Dict, Any, List, Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of simulation events."""
    CONVERSATION_STARTED = "conversation_started"
    TURN_COMPLETED = "turn_completed"
    CONVERSATION_TERMINATED = "conversation_terminated"
    CONVERSATION_STOPPED = "conversation_stopped"
    ERROR_OCCURRED = "error_occurred"


@dataclass
class SimulationEvent:
    """Base class for all simulation events."""
    event_type: EventType
    conversation_id: str
    timestamp: float
    data: Dict[str, Any]


class ConversationStartedEvent(SimulationEvent):
    """Event fired when a call begins."""
    def __init__(self, conversation_id: str, timestamp: float, mood: str, max_turns: int, voice_mode: bool):
        super().__init__(
            event_type=EventType.CONVERSATION_STARTED,
            conversation_id=conversation_id,
            timestamp=timestamp,
            data={"mood": mood, "max_turns": max_turns, "voice_mode": voice_mode}
        )


class TurnCompletedEvent(SimulationEvent):
    """Event fired when an utterance is appended to the turn log."""
    def __init__(self, conversation_id: str, timestamp: float, role: str,
                 content: str, message_index: int, turn_count: int):
        super().__init__(
            event_type=EventType.TURN_COMPLETED,
            conversation_id=conversation_id,
            timestamp=timestamp,
            data={
                "role": role,
                "content": content,
                "message_index": message_index,
                "turn_count": turn_count
            }
        )


class ConversationTerminatedEvent(SimulationEvent):
    """Event fired when a call ends on its own (closing phrase or turn limit)."""
    def __init__(self, conversation_id: str, timestamp: float, reason: str,
                 turn_count: int, total_messages: int):
        super().__init__(
            event_type=EventType.CONVERSATION_TERMINATED,
            conversation_id=conversation_id,
            timestamp=timestamp,
            data={
                "reason": reason,
                "turn_count": turn_count,
                "total_messages": total_messages
            }
        )


class ConversationStoppedEvent(SimulationEvent):
    """Event fired when a caller stops a call explicitly."""
    def __init__(self, conversation_id: str, timestamp: float, turn_count: int, total_messages: int):
        super().__init__(
            event_type=EventType.CONVERSATION_STOPPED,
            conversation_id=conversation_id,
            timestamp=timestamp,
            data={"turn_count": turn_count, "total_messages": total_messages}
        )


class ErrorOccurredEvent(SimulationEvent):
    """Event fired when an error occurs."""
    def __init__(self, conversation_id: str, timestamp: float, error_type: str,
                 error_message: str, component: str):
        super().__init__(
            event_type=EventType.ERROR_OCCURRED,
            conversation_id=conversation_id,
            timestamp=timestamp,
            data={
                "error_type": error_type,
                "error_message": error_message,
                "component": component
            }
        )


EventHandler = Callable[[SimulationEvent], None]


class SimulationEventBus:
    """Event bus for simulator components."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events."""
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe from specific event type."""
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: SimulationEvent) -> None:
        """
        Emit an event to all subscribers. Handler failures are logged, never raised.
        """
        logger.debug(f"Emitting event: {event.event_type} for conversation {event.conversation_id}")

        for handler in self._handlers.get(event.event_type, []):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

        for handler in self._global_handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

    def clear_handlers(self) -> None:
        """Clear all event handlers."""
        self._handlers.clear()
        self._global_handlers.clear()


class EventLogger:
    """Logs all events for debugging and analysis."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.logger.setLevel(log_level)

    def handle_event(self, event: SimulationEvent) -> None:
        self.logger.info(f"Event: {event.event_type.value} | Conversation: {event.conversation_id} | Data: {event.data}")


class SimulationMetrics:
    """Collects counters from simulation events."""

    def __init__(self):
        self.reset()

    def handle_event(self, event: SimulationEvent) -> None:
        if event.event_type == EventType.CONVERSATION_STARTED:
            self.conversations_started += 1
        elif event.event_type == EventType.CONVERSATION_TERMINATED:
            self.conversations_terminated += 1
        elif event.event_type == EventType.CONVERSATION_STOPPED:
            self.conversations_stopped += 1
        elif event.event_type == EventType.TURN_COMPLETED:
            if event.data.get("role") == "assistant":
                self.assistant_turns += 1
            else:
                self.patient_turns += 1
        elif event.event_type == EventType.ERROR_OCCURRED:
            self.errors_occurred += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        return {
            "conversations_started": self.conversations_started,
            "conversations_terminated": self.conversations_terminated,
            "conversations_stopped": self.conversations_stopped,
            "assistant_turns": self.assistant_turns,
            "patient_turns": self.patient_turns,
            "errors_occurred": self.errors_occurred
        }

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self.conversations_started = 0
        self.conversations_terminated = 0
        self.conversations_stopped = 0
        self.assistant_turns = 0
        self.patient_turns = 0
        self.errors_occurred = 0
