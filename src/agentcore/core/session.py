"""JSONL append-only task session persistence."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from agentcore.types.providers import ChatMessage
from agentcore.types.session import SessionInfo

logger = logging.getLogger(__name__)


def _sessions_dir() -> Path:
    """Get the sessions directory, creating it if needed."""
    d = Path.home() / ".agentcore" / "sessions"
    d.mkdir(parents=True, exist_ok=True)
    return d


def new_session_id() -> str:
    """Generate a new session ID."""
    return uuid.uuid4().hex[:12]


def _message_entry(msg: ChatMessage) -> dict[str, Any]:
    # Content blocks are stored verbatim so tool_use ``id`` presence survives
    # a round trip; protocol detection on resume depends on it.
    data: dict[str, Any] = {"role": msg.role, "content": msg.content}
    if msg.tool_use_id:
        data["tool_use_id"] = msg.tool_use_id
    if msg.tool_name:
        data["tool_name"] = msg.tool_name
    return {"type": "message", "data": data}


class Session:
    """Append-only JSONL transcript plus task metadata.

    Metadata entries are cumulative: the last value written for a key wins
    on load.
    """

    def __init__(self, session_id: str | None = None, cwd: str = ".", parent_id: str | None = None):
        self.session_id = session_id or new_session_id()
        self._path = _sessions_dir() / f"{self.session_id}.jsonl"
        self._messages: list[ChatMessage] = []
        self._metadata: dict[str, Any] = {
            "session_id": self.session_id,
            "cwd": cwd,
            "created_at": datetime.now(UTC).isoformat(),
        }
        if parent_id:
            self._metadata["parent_id"] = parent_id
        self._turns = 0
        self._total_tokens = 0

        if self._path.exists():
            self._load()

    @classmethod
    def exists(cls, session_id: str) -> bool:
        return (_sessions_dir() / f"{session_id}.jsonl").exists()

    def _load(self) -> None:
        """Load existing session from JSONL."""
        with open(self._path, encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning("Skipping corrupt line %d in %s", lineno, self._path)
                    continue
                match entry.get("type"):
                    case "metadata":
                        self._metadata.update(entry.get("data", {}))
                    case "message":
                        msg_data = entry["data"]
                        self._messages.append(ChatMessage(
                            role=msg_data["role"],
                            content=msg_data["content"],
                            tool_use_id=msg_data.get("tool_use_id"),
                            tool_name=msg_data.get("tool_name"),
                        ))
                    case "turn":
                        self._turns = entry.get("turn", self._turns)
                        self._total_tokens += entry.get("tokens", 0)

    def _append(self, entry: dict[str, Any]) -> None:
        """Append an entry to the JSONL file."""
        with open(self._path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, default=str) + "\n")

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def save_metadata(self, **values: Any) -> None:
        """Merge *values* into the metadata and persist them."""
        self._metadata.update(values)
        self._metadata["updated_at"] = datetime.now(UTC).isoformat()
        self._append({"type": "metadata", "data": self._metadata})

    @property
    def metadata(self) -> dict[str, Any]:
        return dict(self._metadata)

    @property
    def tool_protocol(self) -> str | None:
        """Protocol recorded once the task first executed a tool."""
        return self._metadata.get("tool_protocol")

    # ------------------------------------------------------------------
    # Transcript
    # ------------------------------------------------------------------

    def add_message(self, msg: ChatMessage) -> None:
        """Add a message to the session."""
        self._messages.append(msg)
        self._append(_message_entry(msg))

    def record_turn(self, tokens: int = 0) -> None:
        """Record a completed model turn."""
        self._turns += 1
        self._total_tokens += tokens
        self._append({
            "type": "turn",
            "turn": self._turns,
            "tokens": tokens,
            "timestamp": datetime.now(UTC).isoformat(),
        })

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    @property
    def turns(self) -> int:
        return self._turns

    @property
    def total_tokens(self) -> int:
        return self._total_tokens

    def get_info(self) -> SessionInfo:
        """Get session info summary."""
        now_iso = datetime.now(UTC).isoformat()
        created = self._metadata.get("created_at", now_iso)
        updated = self._metadata.get("updated_at", created)
        return SessionInfo(
            session_id=self.session_id,
            created_at=datetime.fromisoformat(created),
            updated_at=datetime.fromisoformat(updated),
            cwd=self._metadata.get("cwd", "."),
            mode=self._metadata.get("mode", "unknown"),
            tool_protocol=self.tool_protocol,
            turns=self._turns,
            total_tokens=self._total_tokens,
            parent_id=self._metadata.get("parent_id"),
        )


def list_sessions() -> list[SessionInfo]:
    """List all saved sessions, newest first."""
    sessions_dir = _sessions_dir()
    results = []
    for path in sorted(sessions_dir.glob("*.jsonl"), key=lambda p: p.stat().st_mtime, reverse=True):
        try:
            results.append(Session(path.stem).get_info())
        except (OSError, KeyError, ValueError) as e:
            logger.warning("Skipping unreadable session %s: %s", path.stem, e)
    return results
