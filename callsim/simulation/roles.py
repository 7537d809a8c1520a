"""
Role profiles: what each party is told and which voice it speaks with.
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional

from .models import Role, PersonaConfig, ConversationState
from .prompts import PersonaPromptBuilder, build_assistant_instruction
from ..config import ASSISTANT_TEMPERATURE, PATIENT_TEMPERATURE


class RoleProfile(ABC):
    """Common interface for the two call parties."""
    role: Role
    temperature: float

    @abstractmethod
    def system_instruction(self) -> str:
        pass

    @abstractmethod
    def voice(self) -> Optional[str]:
        pass


class AssistantRole(RoleProfile):
    """Ava, working from the call script."""
    role = Role.ASSISTANT
    temperature = ASSISTANT_TEMPERATURE

    def __init__(self, script_text: str, voice: Optional[str] = None):
        self.script_text = script_text
        self._voice = voice

    def system_instruction(self) -> str:
        return build_assistant_instruction(self.script_text)

    def voice(self) -> Optional[str]:
        return self._voice


class PatientRole(RoleProfile):
    """The simulated patient, shaped by mood and background."""
    role = Role.PATIENT
    temperature = PATIENT_TEMPERATURE

    def __init__(self, persona: PersonaConfig, voice: Optional[str] = None):
        self.persona = persona
        self._voice = voice

    def system_instruction(self) -> str:
        return PersonaPromptBuilder.build(self.persona.mood_key, self.persona.background_text)

    def voice(self) -> Optional[str]:
        return self._voice


def role_profiles(state: ConversationState) -> Dict[Role, RoleProfile]:
    """Build both profiles for a conversation, keyed by role."""
    voices = state.voice_config
    return {
        Role.ASSISTANT: AssistantRole(
            state.script_text,
            voices.voice_for(Role.ASSISTANT) if voices else None,
        ),
        Role.PATIENT: PatientRole(
            state.persona,
            voices.voice_for(Role.PATIENT) if voices else None,
        ),
    }
