"""LLM client for text completion."""

from .client import VertexChatClient, SELF, OTHER

__all__ = ["VertexChatClient", "SELF", "OTHER"]
