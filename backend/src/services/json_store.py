"""JSON-file based ConversationStore implementation."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import DATA_DIR
from ..engine.schemas import Stage1Response, Stage2Ranking, Stage3Response
from .conversation_store import ConversationNotFoundError, ConversationStore

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Conversation"


class JsonConversationStore:
    def __init__(self, data_dir: str | os.PathLike[str] = DATA_DIR):
        self._data_dir = Path(data_dir)

    def ensure_data_dir(self) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)

    def get_conversation_path(self, conversation_id: str) -> Path:
        return self._data_dir / f"{conversation_id}.json"

    async def create_conversation(self, conversation_id: str) -> Dict[str, Any]:
        conversation = {
            "id": conversation_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "title": DEFAULT_TITLE,
            "messages": [],
        }
        await self.save_conversation(conversation)
        return conversation

    async def get_conversation(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        path = self.get_conversation_path(conversation_id)
        if not path.exists():
            return None

        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    async def save_conversation(self, conversation: Dict[str, Any]) -> None:
        self.ensure_data_dir()
        path = self.get_conversation_path(conversation["id"])
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(conversation, f, indent=2)
        os.replace(tmp_path, path)

    async def list_conversations(self) -> List[Dict[str, Any]]:
        self.ensure_data_dir()

        conversations = []
        for path in self._data_dir.glob("*.json"):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                conversations.append(
                    {
                        "id": data["id"],
                        "created_at": data["created_at"],
                        "title": data.get("title", DEFAULT_TITLE),
                        "message_count": len(data["messages"]),
                    }
                )
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.warning("Skipping unreadable conversation file %s: %s", path.name, e)

        conversations.sort(key=lambda x: x["created_at"], reverse=True)
        return conversations

    async def _require(self, conversation_id: str) -> Dict[str, Any]:
        conversation = await self.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    async def add_user_message(self, conversation_id: str, content: str) -> None:
        conversation = await self._require(conversation_id)
        conversation["messages"].append({"role": "user", "content": content})
        await self.save_conversation(conversation)

    async def add_assistant_message(
        self,
        conversation_id: str,
        stage1: List[Stage1Response],
        stage2: List[Stage2Ranking],
        stage3: Stage3Response,
    ) -> None:
        conversation = await self._require(conversation_id)
        conversation["messages"].append(
            {
                "role": "assistant",
                "stage1": [r.model_dump() for r in stage1],
                "stage2": [r.model_dump() for r in stage2],
                "stage3": stage3.model_dump(),
            }
        )
        await self.save_conversation(conversation)

    async def update_conversation_title(self, conversation_id: str, title: str) -> None:
        conversation = await self._require(conversation_id)
        conversation["title"] = title
        await self.save_conversation(conversation)


_DEFAULT_STORE: ConversationStore = JsonConversationStore()


def get_default_store() -> ConversationStore:
    return _DEFAULT_STORE
