import asyncio
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from .conversations import is_valid_conversation_id
from ..schemas.conversations import SendMessageRequest
from ...config import CouncilConfig
from ...engine.council import CouncilOrchestrator
from ...engine.errors import CouncilError
from ...engine.schemas import CouncilResult
from ...services.conversation_store import ConversationStore
from ...services.json_store import get_default_store


logger = logging.getLogger(__name__)

router = APIRouter()


def get_council() -> CouncilOrchestrator:
    return CouncilOrchestrator(CouncilConfig.from_env())


async def _load_conversation(store: ConversationStore, conversation_id: str) -> Dict[str, Any]:
    conversation = None
    if is_valid_conversation_id(conversation_id):
        conversation = await store.get_conversation(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


async def _save_title(
    store: ConversationStore, conversation_id: str, title_task: Optional["asyncio.Task[str]"]
) -> Optional[str]:
    if title_task is None:
        return None
    title = await title_task
    await store.update_conversation_title(conversation_id, title)
    return title


def _cancel_pending(task: Optional["asyncio.Task[str]"]) -> None:
    if task is not None and not task.done():
        task.cancel()


def _sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@router.post("/api/conversations/{conversation_id}/message", response_model=CouncilResult)
async def send_message(
    conversation_id: str,
    request: SendMessageRequest,
    store: ConversationStore = Depends(get_default_store),
    council: CouncilOrchestrator = Depends(get_council),
):
    """
    Send a message and run the 3-stage council process.
    Returns the complete response with all stages.
    """
    conversation = await _load_conversation(store, conversation_id)
    is_first_message = len(conversation["messages"]) == 0

    await store.add_user_message(conversation_id, request.content)

    # Title generation runs alongside the council and never fails the request.
    title_task = None
    if is_first_message:
        title_task = asyncio.create_task(council.generate_conversation_title(request.content))

    try:
        try:
            result = await council.run_full_council(request.content)
        except CouncilError as e:
            await _save_title(store, conversation_id, title_task)
            raise HTTPException(status_code=502, detail=e.code) from e
        await _save_title(store, conversation_id, title_task)
    finally:
        _cancel_pending(title_task)

    await store.add_assistant_message(conversation_id, result.stage1, result.stage2, result.stage3)
    return result


@router.post("/api/conversations/{conversation_id}/message/stream")
async def send_message_stream(
    conversation_id: str,
    request: SendMessageRequest,
    store: ConversationStore = Depends(get_default_store),
    council: CouncilOrchestrator = Depends(get_council),
):
    """
    Send a message and stream the 3-stage council process.
    Returns Server-Sent Events as each stage completes.
    """
    conversation = await _load_conversation(store, conversation_id)
    is_first_message = len(conversation["messages"]) == 0

    async def event_generator():
        title_task = None
        try:
            await store.add_user_message(conversation_id, request.content)

            if is_first_message:
                title_task = asyncio.create_task(council.generate_conversation_title(request.content))

            result: Optional[CouncilResult] = None
            async for event in council.iter_council(request.content):
                if event.type == "complete":
                    result = event.data
                    continue
                yield _sse(event.model_dump(mode="json", exclude_none=True))

            title = await _save_title(store, conversation_id, title_task)
            title_task = None
            if title is not None:
                yield _sse({"type": "title_complete", "data": {"title": title}})

            await store.add_assistant_message(conversation_id, result.stage1, result.stage2, result.stage3)
            yield _sse({"type": "complete"})

        except CouncilError as e:
            await _save_title(store, conversation_id, title_task)
            yield _sse({"type": "error", "message": str(e), "error_code": e.code})
        except Exception as e:
            logger.exception("Council stream failed for conversation %s", conversation_id)
            yield _sse({"type": "error", "message": str(e), "error_code": "internal_server_error"})
        finally:
            # Also covers a client that disconnects mid-stream.
            _cancel_pending(title_task)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
