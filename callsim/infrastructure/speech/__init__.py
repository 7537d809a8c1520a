"""Speech-to-text and text-to-speech modules."""

from .tts import synthesize_speech
from .stt import transcribe_audio
from ...config import LANGUAGE_CODE, SPEECH_TIMEOUT


class SpeechGateway:
    """Bundles synthesis and transcription so they can be injected (and mocked) together."""

    def __init__(self, language_code: str = LANGUAGE_CODE, timeout: float = SPEECH_TIMEOUT):
        self.language_code = language_code
        self.timeout = timeout

    def synthesize(self, text: str, voice_id: str) -> bytes:
        return synthesize_speech(text, voice=voice_id, timeout=self.timeout)

    def transcribe(self, audio_bytes: bytes, mime_type: str = "audio/wav") -> str:
        return transcribe_audio(audio_bytes, mime_type, language=self.language_code, timeout=self.timeout)


__all__ = ["SpeechGateway", "synthesize_speech", "transcribe_audio"]
