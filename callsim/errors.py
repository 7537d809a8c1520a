"""
Error types raised across the call simulator.
"""
from typing import Optional


class SimulationError(Exception):
    """Base class for all call simulator errors."""


class ProviderError(SimulationError):
    """An external text or speech call failed (network, auth, rate limit, bad payload)."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        prefix = f"{provider} error {status_code}" if status_code is not None else f"{provider} error"
        super().__init__(f"{prefix}: {message}")


class NoActiveConversation(SimulationError):
    """Advance or respond was called before start or after the call ended."""

    def __init__(self, message: str = "No active conversation. Start a conversation first."):
        super().__init__(message)


class TranscriptionEmpty(SimulationError):
    """Speech-to-text returned no usable text; the caller should ask the user to repeat."""

    def __init__(self, message: str = "Could not transcribe audio. Please speak clearly and try again."):
        super().__init__(message)


class MalformedScript(SimulationError):
    """A call script yielded no QUESTION blocks (only raised in strict extraction)."""
