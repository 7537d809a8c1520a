from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as google_exceptions
from google.cloud import speech, texttospeech

from callsim.errors import ProviderError
from callsim.infrastructure.speech import stt, tts, SpeechGateway


def test_recognition_config_for_webm():
    config = stt.recognition_config("audio/webm;codecs=opus", "en-GB")
    assert config.encoding == speech.RecognitionConfig.AudioEncoding.WEBM_OPUS
    assert config.sample_rate_hertz == 48000
    assert config.language_code == "en-GB"


def test_recognition_config_for_wav_leaves_rate_to_header():
    config = stt.recognition_config("audio/wav")
    assert config.encoding == speech.RecognitionConfig.AudioEncoding.ENCODING_UNSPECIFIED
    assert config.sample_rate_hertz == 0


def test_transcribe_joins_results(monkeypatch):
    client = MagicMock()
    client.recognize.return_value = SimpleNamespace(results=[
        SimpleNamespace(alternatives=[SimpleNamespace(transcript="I take")]),
        SimpleNamespace(alternatives=[]),
        SimpleNamespace(alternatives=[SimpleNamespace(transcript="aspirin daily")]),
    ])
    monkeypatch.setattr(stt.speech, "SpeechClient", lambda: client)

    assert stt.transcribe_audio(b"audio", "audio/ogg", timeout=5) == "I take aspirin daily"
    assert client.recognize.call_args.kwargs["timeout"] == 5


def test_transcribe_failure_raises_provider_error(monkeypatch):
    client = MagicMock()
    client.recognize.side_effect = google_exceptions.ServiceUnavailable("down")
    monkeypatch.setattr(stt.speech, "SpeechClient", lambda: client)

    with pytest.raises(ProviderError) as excinfo:
        stt.transcribe_audio(b"audio")
    assert excinfo.value.provider == "google-stt"
    assert excinfo.value.status_code == 503


def test_synthesize_uses_voice_locale(monkeypatch):
    client = MagicMock()
    client.synthesize_speech.return_value = SimpleNamespace(audio_content=b"RIFF....")
    monkeypatch.setattr(tts.texttospeech, "TextToSpeechClient", lambda: client)

    assert tts.synthesize_speech("Hello", voice="en-GB-Neural2-A") == b"RIFF...."
    kwargs = client.synthesize_speech.call_args.kwargs
    assert kwargs["voice"].language_code == "en-GB"
    assert kwargs["voice"].name == "en-GB-Neural2-A"
    assert kwargs["audio_config"].audio_encoding == texttospeech.AudioEncoding.LINEAR16
    assert kwargs["audio_config"].sample_rate_hertz == 24000


def test_synthesize_failure_raises_provider_error(monkeypatch):
    client = MagicMock()
    client.synthesize_speech.side_effect = google_exceptions.PermissionDenied("no access")
    monkeypatch.setattr(tts.texttospeech, "TextToSpeechClient", lambda: client)

    with pytest.raises(ProviderError) as excinfo:
        tts.synthesize_speech("Hello")
    assert excinfo.value.provider == "google-tts"


def test_gateway_delegates(monkeypatch):
    calls = []
    monkeypatch.setattr("callsim.infrastructure.speech.synthesize_speech",
                        lambda text, voice, timeout: calls.append((text, voice, timeout)) or b"wav")
    monkeypatch.setattr("callsim.infrastructure.speech.transcribe_audio",
                        lambda audio, mime, language, timeout: f"{mime}|{language}")

    gateway = SpeechGateway(language_code="en-AU", timeout=7)
    assert gateway.synthesize("Hi", "en-AU-Neural2-B") == b"wav"
    assert calls == [("Hi", "en-AU-Neural2-B", 7)]
    assert gateway.transcribe(b"x", "audio/flac") == "audio/flac|en-AU"
