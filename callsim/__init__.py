"""
Callsim: simulated pre-procedure phone calls between a healthcare assistant and a patient.

Two LLM-driven parties take turns on a call, optionally spoken aloud with
Google Cloud voices, and finished calls can be audited against the call
script they were supposed to follow.
"""

__version__ = "1.0.0"

# Main entry points
from .simulation.orchestrator import ConversationOrchestrator
from .simulation.service import ConversationService
from .simulation.models import Role, Turn, PersonaConfig, VoiceConfig
from .simulation.audit import extract_expected, audit, audit_transcript, audit_transcript_file
from .errors import SimulationError, ProviderError, NoActiveConversation, TranscriptionEmpty, MalformedScript

__all__ = [
    "ConversationOrchestrator", "ConversationService",
    "Role", "Turn", "PersonaConfig", "VoiceConfig",
    "extract_expected", "audit", "audit_transcript", "audit_transcript_file",
    "SimulationError", "ProviderError", "NoActiveConversation", "TranscriptionEmpty", "MalformedScript",
]
