from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from ..engine.schemas import Stage1Response, Stage2Ranking, Stage3Response


class ConversationNotFoundError(LookupError):
    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class ConversationStore(Protocol):
    """Durable map from conversation id to conversation. Only the three stage outputs are stored."""

    async def create_conversation(self, conversation_id: str) -> Dict[str, Any]: ...

    async def get_conversation(self, conversation_id: str) -> Optional[Dict[str, Any]]: ...

    async def list_conversations(self) -> List[Dict[str, Any]]: ...

    async def add_user_message(self, conversation_id: str, content: str) -> None: ...

    async def add_assistant_message(
        self,
        conversation_id: str,
        stage1: List[Stage1Response],
        stage2: List[Stage2Ranking],
        stage3: Stage3Response,
    ) -> None: ...

    async def update_conversation_title(self, conversation_id: str, title: str) -> None: ...
