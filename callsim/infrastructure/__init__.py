"""Infrastructure components for the call simulator.

This module contains the provider gateways and storage the simulation
relies on: the Vertex AI chat client, Google Cloud speech, and the
conversation recorder.
"""

# LLM infrastructure
from .llm import VertexChatClient

# Speech services
from .speech import SpeechGateway, synthesize_speech, transcribe_audio

# Recorded conversations
from .data import ConversationRecorder, ConversationRecord

__all__ = [
    # LLM client
    "VertexChatClient",

    # Speech services
    "SpeechGateway", "synthesize_speech", "transcribe_audio",

    # Storage
    "ConversationRecorder", "ConversationRecord"
]
