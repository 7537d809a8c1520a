"""
Conversation record structures and the flat JSON recorder.
Each finished call is written once to its own file; nothing is updated in place.
"""
import os
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any

logger = logging.getLogger("conversation_recorder")


@dataclass
class ConversationTurn:
    """Represents a single persisted utterance."""
    role: str  # "assistant" or "patient"
    content: str
    timestamp: str  # ISO format


@dataclass
class AgentInfo:
    """Which model and voice produced a role's turns."""
    model: str
    provider: str
    role: str
    voice: Optional[str] = None


@dataclass
class ConversationRecord:
    """Complete record of a single simulated call."""
    # Basic metadata
    conversation_id: str
    timestamp: str  # ISO format, when the record was written
    record_type: str = "simulation"  # "simulation", "voice_simulation" or "voice_call"

    # Inputs
    call_script_file: Optional[str] = None
    patient_context_file: Optional[str] = None
    patient_mood: str = "cooperative"

    # Who spoke
    agents: Dict[str, AgentInfo] = field(default_factory=dict)

    # Conversation flow
    messages: List[ConversationTurn] = field(default_factory=list)
    total_turns: int = 0  # completed assistant/patient exchanges
    conversation_complete: bool = True
    stop_reason: Optional[str] = None

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize using the transcript file layout readers expect."""
        return {
            "conversationId": self.conversation_id,
            "timestamp": self.timestamp,
            "type": self.record_type,
            "callScriptFile": self.call_script_file,
            "patientContextFile": self.patient_context_file,
            "patientMood": self.patient_mood,
            "agents": {
                name: {k: v for k, v in vars(agent).items() if v is not None}
                for name, agent in self.agents.items()
            },
            "totalTurns": self.total_turns,
            "conversationComplete": self.conversation_complete,
            "stopReason": self.stop_reason,
            "messages": [vars(m) for m in self.messages],
        }

    @classmethod
    def from_json_dict(cls, data: Dict[str, Any]) -> "ConversationRecord":
        agents = {
            name: AgentInfo(
                model=info.get("model", ""),
                provider=info.get("provider", ""),
                role=info.get("role", name),
                voice=info.get("voice"),
            )
            for name, info in (data.get("agents") or {}).items()
        }
        messages = [
            ConversationTurn(
                role=m.get("role", ""),
                content=m.get("content", ""),
                timestamp=m.get("timestamp", ""),
            )
            for m in (data.get("messages") or [])
        ]
        return cls(
            conversation_id=data.get("conversationId", ""),
            timestamp=data.get("timestamp", ""),
            record_type=data.get("type", "simulation"),
            call_script_file=data.get("callScriptFile"),
            patient_context_file=data.get("patientContextFile"),
            patient_mood=data.get("patientMood", "cooperative"),
            agents=agents,
            messages=messages,
            total_turns=int(data.get("totalTurns", len(messages) // 2)),
            conversation_complete=bool(data.get("conversationComplete", True)),
            stop_reason=data.get("stopReason"),
        )


class ConversationRecorder:
    """Writes finished conversations as JSON files under one directory."""

    def __init__(self, conversations_dir: str = "./conversations"):
        self.conversations_dir = conversations_dir

    def _filename(self, record: ConversationRecord) -> str:
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
        prefix = "voice_conversation" if record.record_type.startswith("voice") else "conversation"
        return f"{prefix}_{stamp}.json"

    def save(self, record: ConversationRecord) -> str:
        """
        Write a record to a new file.

        Returns:
            Path of the written file
        """
        os.makedirs(self.conversations_dir, exist_ok=True)
        filename = self._filename(record)
        path = os.path.join(self.conversations_dir, filename)

        # "x" refuses to clobber an existing transcript
        suffix = 0
        while True:
            try:
                f = open(path, "x", encoding="utf-8")
                break
            except FileExistsError:
                suffix += 1
                path = os.path.join(self.conversations_dir, f"{filename[:-5]}-{suffix}.json")

        with f:
            json.dump(record.to_json_dict(), f, indent=2, ensure_ascii=False)

        logger.info(f"Saved conversation {record.conversation_id} ({len(record.messages)} messages) to {path}")
        return path

    def load(self, path: str) -> ConversationRecord:
        with open(path, "r", encoding="utf-8") as f:
            return ConversationRecord.from_json_dict(json.load(f))

    def list_conversations(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Summaries of the newest recorded conversations."""
        if not os.path.isdir(self.conversations_dir):
            return []

        filenames = sorted(
            (name for name in os.listdir(self.conversations_dir) if name.endswith(".json")),
            reverse=True,
        )
        summaries = []
        for filename in filenames[:limit]:
            path = os.path.join(self.conversations_dir, filename)
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping unreadable conversation file {path}: {e}")
                continue
            summaries.append({
                "id": filename[:-5],
                "filename": filename,
                "timestamp": data.get("timestamp"),
                "totalTurns": data.get("totalTurns"),
                "messageCount": len(data.get("messages") or []),
            })
        return summaries
