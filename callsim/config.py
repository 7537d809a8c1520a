"""
Callsim Configuration System
============================

This file contains ALL configuration for the call simulator.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
from dataclasses import dataclass
from typing import Optional


# =============================================================================
# USER SETTINGS - Edit these to customize the simulated calls
# =============================================================================

# REQUIRED: Set your Google Cloud project
GOOGLE_CLOUD_PROJECT = "your-project-id"  # Change this!
GOOGLE_APPLICATION_CREDENTIALS = None  # Optional: path to credentials JSON

# Call settings
MAX_TURNS = 20
CALL_SCRIPT_PATH = "./call-script.txt"
PATIENT_CONTEXT_PATH = "./sample-context.txt"
PATIENT_MOOD = "cooperative"
CONVERSATIONS_DIR = "./conversations"
FINISHED_CONVERSATIONS_KEPT = 50  # finished calls a ConversationService keeps readable

# Speech settings
ENABLE_VOICE = False
ASSISTANT_VOICE = "en-US-Neural2-F"
PATIENT_VOICE = "en-US-Neural2-D"
LANGUAGE_CODE = "en-US"

# Logging
LOG_FILE = "./_callsim/callsim.log"
LOG_LEVEL = "INFO"


# =============================================================================
# VOICES
# =============================================================================

AVAILABLE_VOICES = [
    {"id": "en-US-Neural2-F", "name": "Neural2 F", "gender": "female", "accent": "American", "default": "assistant"},
    {"id": "en-US-Neural2-C", "name": "Neural2 C", "gender": "female", "accent": "American"},
    {"id": "en-US-Neural2-H", "name": "Neural2 H", "gender": "female", "accent": "American"},
    {"id": "en-GB-Neural2-A", "name": "Neural2 GB A", "gender": "female", "accent": "British"},
    {"id": "en-US-Neural2-D", "name": "Neural2 D", "gender": "male", "accent": "American", "default": "patient"},
    {"id": "en-US-Neural2-A", "name": "Neural2 A", "gender": "male", "accent": "American"},
    {"id": "en-US-Neural2-J", "name": "Neural2 J", "gender": "male", "accent": "American"},
    {"id": "en-GB-Neural2-B", "name": "Neural2 GB B", "gender": "male", "accent": "British"},
    {"id": "en-AU-Neural2-B", "name": "Neural2 AU B", "gender": "male", "accent": "Australian"},
]


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# LLM
VERTEX_LOCATION = "us-central1"
MODEL_NAME = "gemini-2.5-flash"
LLM_TIMEOUT = 60
LLM_MAX_RETRIES = 2
LLM_RETRY_BACKOFF = 1.5
MAX_OUTPUT_TOKENS = 1024
ASSISTANT_TEMPERATURE = 0.7
PATIENT_TEMPERATURE = 0.8

# Speech technical
SPEECH_TIMEOUT = 30
TTS_SAMPLE_RATE = 24000
STT_SAMPLE_RATE = 16000

# Conversation termination
TERMINATION_PHRASES = (
    "goodbye",
    "thank you for your time",
    "have a great day",
    "take care",
    "we're all set",
    "that completes",
)
TERMINATION_MAX_LENGTH = 300


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    google_cloud_project: str
    google_application_credentials: Optional[str] = None
    vertex_location: str = VERTEX_LOCATION
    model_name: str = MODEL_NAME
    max_turns: int = MAX_TURNS
    call_script_path: str = CALL_SCRIPT_PATH
    patient_context_path: str = PATIENT_CONTEXT_PATH
    patient_mood: str = PATIENT_MOOD
    conversations_dir: str = CONVERSATIONS_DIR
    enable_voice: bool = ENABLE_VOICE
    assistant_voice: str = ASSISTANT_VOICE
    patient_voice: str = PATIENT_VOICE
    language_code: str = LANGUAGE_CODE
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_config() -> Config:
    """Load configuration."""
    project = os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT
    credentials = os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or GOOGLE_APPLICATION_CREDENTIALS

    if project == "your-project-id":
        raise ValueError("Please set GOOGLE_CLOUD_PROJECT in config.py or as environment variable")

    return Config(
        google_cloud_project=project,
        google_application_credentials=credentials,
        vertex_location=os.getenv("CALLSIM_VERTEX_LOCATION", VERTEX_LOCATION),
        model_name=os.getenv("CALLSIM_MODEL_NAME", MODEL_NAME),
        max_turns=int(os.getenv("CALLSIM_MAX_TURNS", MAX_TURNS)),
        call_script_path=os.getenv("CALLSIM_CALL_SCRIPT", CALL_SCRIPT_PATH),
        patient_context_path=os.getenv("CALLSIM_PATIENT_CONTEXT", PATIENT_CONTEXT_PATH),
        patient_mood=os.getenv("CALLSIM_PATIENT_MOOD", PATIENT_MOOD),
        conversations_dir=os.getenv("CALLSIM_CONVERSATIONS_DIR", CONVERSATIONS_DIR),
        enable_voice=_env_flag("CALLSIM_ENABLE_VOICE", ENABLE_VOICE),
        assistant_voice=os.getenv("CALLSIM_ASSISTANT_VOICE", ASSISTANT_VOICE),
        patient_voice=os.getenv("CALLSIM_PATIENT_VOICE", PATIENT_VOICE),
        language_code=os.getenv("CALLSIM_LANGUAGE_CODE", LANGUAGE_CODE),
        log_file=os.getenv("CALLSIM_LOG_FILE", LOG_FILE),
        log_level=os.getenv("CALLSIM_LOG_LEVEL", LOG_LEVEL),
    )
