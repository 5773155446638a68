from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field

from ...engine.schemas import Stage1Response, Stage2Ranking, Stage3Response


class SendMessageRequest(BaseModel):
    """The user's question for the council."""

    content: str


class UserMessage(BaseModel):
    role: Literal["user"] = "user"
    content: str


class AssistantMessage(BaseModel):
    """One finished council run as stored in the conversation."""

    role: Literal["assistant"] = "assistant"
    stage1: List[Stage1Response]
    stage2: List[Stage2Ranking]
    stage3: Stage3Response


Message = Annotated[Union[UserMessage, AssistantMessage], Field(discriminator="role")]


class ConversationMetadata(BaseModel):
    """Conversation metadata for list view."""

    id: str
    created_at: str
    title: str
    message_count: int


class Conversation(BaseModel):
    """Full conversation with the council's staged answers."""

    id: str
    created_at: str
    title: str
    messages: List[Message]
