"""
Data management infrastructure for recorded conversations.
"""

from .conversations import ConversationTurn, ConversationRecord, AgentInfo, ConversationRecorder

__all__ = [
    'ConversationTurn',
    'ConversationRecord',
    'AgentInfo',
    'ConversationRecorder',
]
