from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any

from ragflow_bridge.config import Settings
from ragflow_bridge.services.knowledge.client import RemoteClient
from ragflow_bridge.services.knowledge.errors import ProtocolError, ValidationError
from ragflow_bridge.services.knowledge.types import Answer, RetrievedPassage

logger = logging.getLogger(__name__)

RETRIEVAL_TOP_K = 5
SIMILARITY_THRESHOLD = 0.2
VECTOR_SIMILARITY_WEIGHT = 0.7

NO_RELEVANT_INFORMATION = (
    "Sorry, I could not find relevant information in the knowledge base to answer this question."
)

SYSTEM_PROMPT = (
    "You are a question-answering assistant backed by a knowledge base. "
    "Answer only from the provided context and do not make up information. "
    "If the context does not contain the answer, tell the user so plainly."
)


def build_context(passages: list[RetrievedPassage]) -> str:
    return "\n\n".join(passage.content for passage in passages)


def build_user_message(*, context: str, question: str) -> str:
    return f"Answer the question using the following context:\n\n{context}\n\nQuestion: {question}"


def _parse_passages(data: Any) -> list[RetrievedPassage]:
    items = data.get("chunks", data.get("items")) if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise ProtocolError("Invalid retrieval payload: missing items")

    doc_names: dict[str, str] = {}
    for aggregate in data.get("doc_aggs") or []:
        if isinstance(aggregate, dict) and isinstance(aggregate.get("doc_id"), str):
            doc_names[aggregate["doc_id"]] = str(aggregate.get("doc_name") or "")

    passages: list[RetrievedPassage] = []
    for item in items:
        content = item.get("content") if isinstance(item, dict) else None
        if not isinstance(content, str):
            raise ProtocolError("Invalid retrieval payload: item without content")
        document_id = str(item.get("document_id") or "")
        highlight = item.get("highlight")
        passages.append(
            RetrievedPassage(
                content=content,
                document_id=document_id,
                document_name=doc_names.get(document_id) or str(item.get("document_keyword") or ""),
                similarity=float(item.get("similarity") or 0.0),
                highlight=highlight if isinstance(highlight, str) else None,
            )
        )
    return passages


def _first_choice_content(payload: dict[str, Any]) -> str:
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ProtocolError("Invalid chat completion payload: missing choices")

    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise ProtocolError("Invalid chat completion payload: missing assistant content")
    return content


class QAEngine:
    def __init__(self, client: RemoteClient, settings: Settings) -> None:
        self._client = client
        self._chat_model = settings.ragflow_chat_model

    async def retrieve(self, dataset_id: str, question: str) -> list[RetrievedPassage]:
        data = await self._client.request(
            "POST",
            "/api/v1/retrieval",
            json={
                "question": question,
                "dataset_ids": [dataset_id],
                "page": 1,
                "page_size": RETRIEVAL_TOP_K,
                "similarity_threshold": SIMILARITY_THRESHOLD,
                "vector_similarity_weight": VECTOR_SIMILARITY_WEIGHT,
                "highlight": True,
            },
            default_error="Retrieval failed",
        )
        return _parse_passages(data)

    async def ask(self, dataset_id: str, question: str) -> str:
        if not dataset_id.strip():
            raise ValidationError("dataset_id must not be empty")
        if not question.strip():
            raise ValidationError("question must not be empty")

        passages = await self.retrieve(dataset_id, question)
        logger.debug("retrieved %d passages from dataset %s", len(passages), dataset_id)
        if not passages:
            return NO_RELEVANT_INFORMATION

        context = build_context(passages)
        # The dataset id doubles as the chat assistant id.
        payload = await self._client.request_raw(
            "POST",
            f"/api/v1/chats_openai/{dataset_id}/chat/completions",
            json={
                "model": self._chat_model,
                "stream": False,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": build_user_message(context=context, question=question),
                    },
                ],
            },
            default_error="Chat completion failed",
        )
        return _first_choice_content(payload)

    async def answer(self, dataset_id: str, question: str) -> Answer:
        text = await self.ask(dataset_id, question)
        return Answer(question=question, answer=text, created_at=datetime.now(timezone.utc))
