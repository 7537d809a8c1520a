"""
Testing infrastructure with mock providers for the call simulator.
"""
import shutil
import tempfile
from typing import Dict, Any, List, Optional

from .models import Role, Turn
from ..infrastructure.data import ConversationRecorder


SAMPLE_CALL_SCRIPT = """PRE-PROCEDURE CALL SCRIPT

GREETING
Introduce yourself as Ava and confirm you are speaking with the patient.
Verify their date of birth before discussing anything medical.

QUESTION 1: Allergies
Ask about allergies to medications, latex or anesthesia.
"Do you have any allergies to medications, latex, or anesthesia?"

QUESTION 2: Blood thinners
"Are you currently taking any blood thinners such as warfarin or aspirin?"

QUESTION 3: Transportation
Confirm the patient has a ride home.
"Will someone be able to drive you home after the procedure?"

CLOSING
Ask if they have any final questions, then thank them and say goodbye.
"""


class MockLLMClient:
    """Mock text-completion client for testing."""

    model = "mock-model"
    provider = "mock"

    def __init__(self, mock_responses: List[str], error: Optional[Exception] = None):
        self.mock_responses = mock_responses
        self.current_response_idx = 0
        self.error = error
        self.request_history = []

    def complete(self, system_instruction: str, turns: List[Dict[str, str]],
                 temperature: float = 0.7, **kwargs) -> str:
        """Return the next scripted response, or raise the configured error."""
        self.request_history.append({
            "system_instruction": system_instruction,
            "turns": [dict(turn) for turn in turns],
            "temperature": temperature,
            "kwargs": kwargs
        })

        if self.error is not None:
            raise self.error

        if self.current_response_idx < len(self.mock_responses):
            response = self.mock_responses[self.current_response_idx]
            self.current_response_idx += 1
            return response
        # Keep talking without ever closing the call
        return "Okay."


class MockSpeechGateway:
    """Mock speech gateway: fake audio out, scripted transcripts in."""

    def __init__(self, transcripts: Optional[List[str]] = None):
        self.transcripts = list(transcripts or [])
        self.synthesized = []
        self.transcribed = []

    def synthesize(self, text: str, voice_id: str) -> bytes:
        self.synthesized.append((text, voice_id))
        return f"{voice_id}:{text}".encode("utf-8")

    def transcribe(self, audio_bytes: bytes, mime_type: str = "audio/wav") -> str:
        self.transcribed.append((audio_bytes, mime_type))
        return self.transcripts.pop(0) if self.transcripts else ""


def create_test_transcript() -> List[Turn]:
    """A short call that covers the allergy question and nothing else."""
    return [
        Turn(Role.ASSISTANT, "Hi, this is Ava calling about your procedure. Can you confirm your date of birth?"),
        Turn(Role.PATIENT, "Sure, it's March 3rd, 1961."),
        Turn(Role.ASSISTANT, "Thank you. Do you have any allergies to medications, latex, or anesthesia?"),
        Turn(Role.PATIENT, "Just penicillin."),
        Turn(Role.ASSISTANT, "Got it. Thanks, take care!"),
    ]


def create_mock_simulation_setup(mock_responses: Optional[List[str]] = None,
                                 transcripts: Optional[List[str]] = None) -> Dict[str, Any]:
    """Create mock providers, a recorder in a temporary directory and a sample script file."""
    temp_dir = tempfile.mkdtemp()
    script_path = f"{temp_dir}/call-script.txt"
    with open(script_path, "w", encoding="utf-8") as f:
        f.write(SAMPLE_CALL_SCRIPT)

    return {
        "llm_client": MockLLMClient(mock_responses or []),
        "speech_gateway": MockSpeechGateway(transcripts),
        "recorder": ConversationRecorder(f"{temp_dir}/conversations"),
        "script_path": script_path,
        "temp_dir": temp_dir
    }


def cleanup_test_files(temp_dir: str) -> None:
    """Clean up test files and directories."""
    shutil.rmtree(temp_dir, ignore_errors=True)
