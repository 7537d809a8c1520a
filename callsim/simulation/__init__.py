"""Call simulation components.

This module contains the business logic for simulated pre-procedure calls:
turn-taking orchestration, patient personas, script-coverage auditing and
the conversation service used by callers that manage several calls.
"""

# Core orchestrator class
from .orchestrator import ConversationOrchestrator, is_closing_utterance, relabel_history

# Data models
from .models import (
    Role, Mood, Turn, PersonaConfig, VoiceConfig,
    ConversationState, ConversationSnapshot, TurnResult
)

# Prompts and role profiles
from .prompts import PersonaPromptBuilder, build_assistant_instruction
from .roles import RoleProfile, AssistantRole, PatientRole, role_profiles

# Script-coverage audit
from .audit import (
    ExpectedQuestion, MatchInfo, AuditResult,
    extract_expected, audit, audit_transcript, audit_transcript_file,
    normalize_text, tokens_for_match
)

# Service layer
from .service import ConversationService, read_text_file

# Event system
from .events import (
    SimulationEventBus, EventLogger, SimulationMetrics,
    EventType, SimulationEvent, ConversationStartedEvent,
    TurnCompletedEvent, ConversationTerminatedEvent,
    ConversationStoppedEvent, ErrorOccurredEvent
)

__all__ = [
    # Orchestrator
    "ConversationOrchestrator", "is_closing_utterance", "relabel_history",

    # Data models
    "Role", "Mood", "Turn", "PersonaConfig", "VoiceConfig",
    "ConversationState", "ConversationSnapshot", "TurnResult",

    # Prompts and roles
    "PersonaPromptBuilder", "build_assistant_instruction",
    "RoleProfile", "AssistantRole", "PatientRole", "role_profiles",

    # Audit
    "ExpectedQuestion", "MatchInfo", "AuditResult",
    "extract_expected", "audit", "audit_transcript", "audit_transcript_file",
    "normalize_text", "tokens_for_match",

    # Service
    "ConversationService", "read_text_file",

    # Events
    "SimulationEventBus", "EventLogger", "SimulationMetrics",
    "EventType", "SimulationEvent", "ConversationStartedEvent",
    "TurnCompletedEvent", "ConversationTerminatedEvent",
    "ConversationStoppedEvent", "ErrorOccurredEvent",
]
