import json

import pytest

from backend.src.engine.schemas import Stage1Response, Stage2Ranking, Stage3Response
from backend.src.services.conversation_store import ConversationNotFoundError
from backend.src.services.json_store import JsonConversationStore


@pytest.mark.asyncio
async def test_create_and_get_round_trip(tmp_path):
    store = JsonConversationStore(tmp_path / "convs")
    created = await store.create_conversation("c1")

    assert created["title"] == "New Conversation"
    assert created["messages"] == []
    assert await store.get_conversation("c1") == created
    assert await store.get_conversation("missing") is None


@pytest.mark.asyncio
async def test_stage_outputs_survive_round_trip(tmp_path):
    store = JsonConversationStore(tmp_path)
    await store.create_conversation("c1")
    await store.add_user_message("c1", "What is Go?")

    stage1 = [Stage1Response(model="m1", response="answer")]
    stage2 = [Stage2Ranking(model="m1", ranking="FINAL RANKING:\n1. Response A", parsed_ranking=["Response A"])]
    stage3 = Stage3Response(model="chair", response="final")
    await store.add_assistant_message("c1", stage1, stage2, stage3)

    messages = (await store.get_conversation("c1"))["messages"]
    assert messages[0] == {"role": "user", "content": "What is Go?"}
    assert messages[1] == {
        "role": "assistant",
        "stage1": [{"model": "m1", "response": "answer"}],
        "stage2": [{"model": "m1", "ranking": "FINAL RANKING:\n1. Response A", "parsed_ranking": ["Response A"]}],
        "stage3": {"model": "chair", "response": "final"},
    }
    assert [Stage2Ranking.model_validate(r) for r in messages[1]["stage2"]] == stage2


@pytest.mark.asyncio
async def test_list_conversations_newest_first_and_skips_bad_files(tmp_path):
    store = JsonConversationStore(tmp_path)
    (tmp_path / "old.json").write_text(
        json.dumps({"id": "old", "created_at": "2024-01-01T00:00:00", "title": "Old", "messages": []})
    )
    (tmp_path / "new.json").write_text(
        json.dumps(
            {"id": "new", "created_at": "2025-01-01T00:00:00", "messages": [{"role": "user", "content": "x"}]}
        )
    )
    (tmp_path / "broken.json").write_text("{not json")
    (tmp_path / "notes.txt").write_text("ignored")

    listed = await store.list_conversations()

    assert listed == [
        {"id": "new", "created_at": "2025-01-01T00:00:00", "title": "New Conversation", "message_count": 1},
        {"id": "old", "created_at": "2024-01-01T00:00:00", "title": "Old", "message_count": 0},
    ]


@pytest.mark.asyncio
async def test_update_title(tmp_path):
    store = JsonConversationStore(tmp_path)
    await store.create_conversation("c1")
    await store.update_conversation_title("c1", "Go Basics")
    assert (await store.get_conversation("c1"))["title"] == "Go Basics"


@pytest.mark.asyncio
async def test_writes_to_missing_conversation_raise(tmp_path):
    store = JsonConversationStore(tmp_path)
    with pytest.raises(ConversationNotFoundError):
        await store.add_user_message("nope", "hi")
    with pytest.raises(ConversationNotFoundError):
        await store.update_conversation_title("nope", "t")
