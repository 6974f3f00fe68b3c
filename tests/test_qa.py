import pytest

from ragflow_bridge.services.knowledge import (
    NO_RELEVANT_INFORMATION,
    ApplicationError,
    ProtocolError,
    QAEngine,
    ValidationError,
)

RETRIEVAL_PATH = "/api/v1/retrieval"
CHAT_PATH = "/api/v1/chats_openai/ds-1/chat/completions"


def _retrieval(*contents: str) -> dict[str, object]:
    return {
        "items": [
            {
                "id": f"chunk-{index}",
                "content": content,
                "document_id": "doc1",
                "document_keyword": "a.pdf",
                "highlight": f"<em>{content}</em>",
                "similarity": 0.8 - index * 0.1,
            }
            for index, content in enumerate(contents)
        ],
        "doc_aggs": [{"doc_id": "doc1", "doc_name": "a.pdf", "count": len(contents)}],
        "total": len(contents),
    }


@pytest.mark.asyncio
async def test_ask_retrieves_then_generates(fake_ragflow, settings) -> None:
    fake_ragflow.ok("POST", RETRIEVAL_PATH, _retrieval("P1", "P2"))
    fake_ragflow.on("POST", CHAT_PATH, {"choices": [{"message": {"content": "Answer"}}]})

    async with fake_ragflow.client(settings) as client:
        answer = await QAEngine(client, settings).ask("ds-1", "What is X?")

    assert answer == "Answer"
    assert fake_ragflow.json_bodies(RETRIEVAL_PATH) == [
        {
            "question": "What is X?",
            "dataset_ids": ["ds-1"],
            "page": 1,
            "page_size": 5,
            "similarity_threshold": 0.2,
            "vector_similarity_weight": 0.7,
            "highlight": True,
        }
    ]

    chat_body = fake_ragflow.json_bodies(CHAT_PATH)[0]
    assert chat_body["model"] == "gpt-3.5-turbo"
    assert chat_body["stream"] is False
    system_message, user_message = chat_body["messages"]
    assert system_message["role"] == "system"
    assert "only from the provided context" in system_message["content"]
    assert user_message["role"] == "user"
    assert "P1\n\nP2" in user_message["content"]
    assert user_message["content"].endswith("What is X?")


@pytest.mark.asyncio
async def test_ask_without_passages_returns_fallback_and_skips_generation(
    fake_ragflow, settings
) -> None:
    fake_ragflow.ok("POST", RETRIEVAL_PATH, {"items": [], "doc_aggs": [], "total": 0})

    async with fake_ragflow.client(settings) as client:
        answer = await QAEngine(client, settings).ask("ds-1", "What is X?")

    assert answer == NO_RELEVANT_INFORMATION
    assert fake_ragflow.paths() == [RETRIEVAL_PATH]


@pytest.mark.asyncio
async def test_completion_without_choices_is_protocol_error(fake_ragflow, settings) -> None:
    fake_ragflow.ok("POST", RETRIEVAL_PATH, _retrieval("P1"))
    fake_ragflow.on("POST", CHAT_PATH, {"choices": [], "id": "chatcmpl-1"})

    async with fake_ragflow.client(settings) as client:
        with pytest.raises(ProtocolError, match="missing choices"):
            await QAEngine(client, settings).ask("ds-1", "What is X?")


@pytest.mark.asyncio
async def test_completion_error_envelope_is_application_error(fake_ragflow, settings) -> None:
    fake_ragflow.ok("POST", RETRIEVAL_PATH, _retrieval("P1"))
    fake_ragflow.on("POST", CHAT_PATH, {"code": 102, "message": "You don't own the chat"})

    async with fake_ragflow.client(settings) as client:
        with pytest.raises(ApplicationError, match="^You don't own the chat$"):
            await QAEngine(client, settings).ask("ds-1", "What is X?")


@pytest.mark.asyncio
async def test_retrieval_failure_never_calls_generation(fake_ragflow, settings) -> None:
    fake_ragflow.on("POST", RETRIEVAL_PATH, {"code": 100, "message": "Index not found"})

    async with fake_ragflow.client(settings) as client:
        with pytest.raises(ApplicationError, match="Index not found"):
            await QAEngine(client, settings).ask("ds-1", "What is X?")

    assert CHAT_PATH not in fake_ragflow.paths()


@pytest.mark.asyncio
async def test_retrieve_maps_passages_with_document_names(fake_ragflow, settings) -> None:
    fake_ragflow.ok("POST", RETRIEVAL_PATH, _retrieval("P1", "P2"))

    async with fake_ragflow.client(settings) as client:
        passages = await QAEngine(client, settings).retrieve("ds-1", "What is X?")

    assert [passage.content for passage in passages] == ["P1", "P2"]
    assert passages[0].document_name == "a.pdf"
    assert passages[0].highlight == "<em>P1</em>"
    assert passages[1].similarity == pytest.approx(0.7)


@pytest.mark.asyncio
async def test_answer_wraps_question_and_timestamp(fake_ragflow, settings) -> None:
    fake_ragflow.ok("POST", RETRIEVAL_PATH, _retrieval("P1"))
    fake_ragflow.on("POST", CHAT_PATH, {"choices": [{"message": {"content": "Answer"}}]})

    async with fake_ragflow.client(settings) as client:
        answer = await QAEngine(client, settings).answer("ds-1", "What is X?")

    assert answer.question == "What is X?"
    assert answer.answer == "Answer"
    assert answer.created_at.tzinfo is not None


@pytest.mark.asyncio
async def test_blank_question_is_rejected_locally(fake_ragflow, settings) -> None:
    async with fake_ragflow.client(settings) as client:
        with pytest.raises(ValidationError, match="question"):
            await QAEngine(client, settings).ask("ds-1", "  ")

    assert fake_ragflow.requests == []
