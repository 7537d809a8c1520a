"""
Text-to-speech functionality using Google Cloud TTS.
"""
import logging

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import texttospeech

from ...config import TTS_SAMPLE_RATE, SPEECH_TIMEOUT, ASSISTANT_VOICE
from ...errors import ProviderError

logger = logging.getLogger("speech_tts")


def _language_for_voice(voice: str) -> str:
    """Voice names are prefixed with their locale, e.g. en-GB-Neural2-A."""
    parts = voice.split("-")
    if len(parts) >= 2:
        return f"{parts[0]}-{parts[1]}"
    return "en-US"


def synthesize_speech(text: str,
                      voice: str = ASSISTANT_VOICE,
                      sample_rate: int = TTS_SAMPLE_RATE,
                      timeout: float = SPEECH_TIMEOUT) -> bytes:
    """
    Synthesize text with Google Cloud Text-to-Speech.

    Returns:
        LINEAR16 WAV bytes

    Raises:
        ProviderError: If the TTS request fails
    """
    try:
        client = texttospeech.TextToSpeechClient()
        response = client.synthesize_speech(
            input=texttospeech.SynthesisInput(text=text),
            voice=texttospeech.VoiceSelectionParams(
                language_code=_language_for_voice(voice),
                name=voice,
            ),
            audio_config=texttospeech.AudioConfig(
                audio_encoding=texttospeech.AudioEncoding.LINEAR16,
                sample_rate_hertz=sample_rate,
            ),
            timeout=timeout,
        )
    except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
        logger.error("Google TTS failed for voice %s: %s", voice, e)
        raise ProviderError("google-tts", str(e), status_code=getattr(e, "code", None)) from e

    logger.debug("Synthesized %d bytes with voice %s", len(response.audio_content), voice)
    return response.audio_content
