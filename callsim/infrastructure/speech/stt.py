"""
Speech-to-text functionality using Google Cloud Speech.
"""
import logging

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import speech

from ...config import LANGUAGE_CODE, SPEECH_TIMEOUT, STT_SAMPLE_RATE
from ...errors import ProviderError

logger = logging.getLogger("speech_stt")

_Encoding = speech.RecognitionConfig.AudioEncoding

# WAV and FLAC carry their own header, so encoding and rate are left to the service
_MIME_ENCODINGS = {
    "audio/wav": (_Encoding.ENCODING_UNSPECIFIED, None),
    "audio/x-wav": (_Encoding.ENCODING_UNSPECIFIED, None),
    "audio/wave": (_Encoding.ENCODING_UNSPECIFIED, None),
    "audio/flac": (_Encoding.FLAC, None),
    "audio/webm": (_Encoding.WEBM_OPUS, 48000),
    "audio/ogg": (_Encoding.OGG_OPUS, 48000),
    "audio/l16": (_Encoding.LINEAR16, STT_SAMPLE_RATE),
}


def recognition_config(mime_type: str, language: str = LANGUAGE_CODE) -> speech.RecognitionConfig:
    """Build a RecognitionConfig for an uploaded clip's MIME type."""
    base_type = mime_type.split(";")[0].strip().lower()
    encoding, sample_rate = _MIME_ENCODINGS.get(base_type, (_Encoding.ENCODING_UNSPECIFIED, None))

    kwargs = {
        "encoding": encoding,
        "language_code": language,
        "enable_automatic_punctuation": True,
    }
    if sample_rate:
        kwargs["sample_rate_hertz"] = sample_rate
    return speech.RecognitionConfig(**kwargs)


def transcribe_audio(audio_bytes: bytes,
                     mime_type: str = "audio/wav",
                     language: str = LANGUAGE_CODE,
                     timeout: float = SPEECH_TIMEOUT) -> str:
    """
    Synchronous Google Cloud Speech-to-Text recognition.
    Returns transcribed text or empty string if no speech detected.

    Raises:
        ProviderError: If the recognition request fails
    """
    audio = speech.RecognitionAudio(content=audio_bytes)

    try:
        client = speech.SpeechClient()
        resp = client.recognize(config=recognition_config(mime_type, language), audio=audio, timeout=timeout)
    except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
        logger.error("Speech recognition failed: %s", e)
        raise ProviderError("google-stt", str(e), status_code=getattr(e, "code", None)) from e

    texts = [r.alternatives[0].transcript for r in resp.results if r.alternatives]
    return " ".join(texts).strip()
