from __future__ import annotations

import logging
from typing import Any

from ragflow_bridge.config import Settings
from ragflow_bridge.services.knowledge.client import RemoteClient
from ragflow_bridge.services.knowledge.errors import ProtocolError
from ragflow_bridge.services.knowledge.types import (
    Dataset,
    DatasetSummary,
    RemoteDocument,
    SourceFile,
)

logger = logging.getLogger(__name__)

LISTING_PAGE_SIZE = 100
SENTENCE_DELIMITERS = "\n!?。；！？"


def build_parser_config() -> dict[str, Any]:
    return {
        "chunk_token_count": 256,
        "layout_recognize": True,
        "html4excel": False,
        "delimiter": SENTENCE_DELIMITERS,
        "task_page_size": 12,
        "raptor": {"use_raptor": False},
    }


def _listing_items(data: Any, what: str) -> list[Any]:
    items = data.get("items") if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise ProtocolError(f"Invalid {what} listing payload: missing items")
    return items


class DatasetManager:
    def __init__(self, client: RemoteClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    async def create_dataset(self, name: str) -> str:
        data = await self._client.request(
            "POST",
            "/api/v1/datasets",
            json={
                "name": name,
                "language": self._settings.ragflow_language,
                "embedding_model": self._settings.ragflow_embedding_model,
                "permission": "me",
                "chunk_method": "naive",
                "parser_config": build_parser_config(),
            },
            default_error="Failed to create dataset",
        )
        dataset = DatasetSummary.from_payload(data)
        logger.info("created dataset name=%s id=%s", name, dataset.id)
        return dataset.id

    async def list_datasets(self) -> list[DatasetSummary]:
        data = await self._client.request(
            "GET",
            "/api/v1/datasets",
            params={"page": 1, "page_size": LISTING_PAGE_SIZE},
            default_error="Failed to list datasets",
        )
        return [DatasetSummary.from_payload(item) for item in _listing_items(data, "dataset")]

    async def get_dataset(self, dataset_id: str) -> Dataset:
        data = await self._client.request(
            "GET",
            f"/api/v1/datasets/{dataset_id}",
            default_error="Failed to fetch dataset",
        )
        if isinstance(data, list):
            data = next(
                (item for item in data if isinstance(item, dict) and item.get("id") == dataset_id),
                None,
            )
        return Dataset.from_payload(data)

    async def list_documents(self, dataset_id: str) -> list[RemoteDocument]:
        data = await self._client.request(
            "GET",
            f"/api/v1/datasets/{dataset_id}/documents",
            params={"page": 1, "page_size": LISTING_PAGE_SIZE},
            default_error="Failed to list documents",
        )
        return [RemoteDocument.from_payload(item) for item in _listing_items(data, "document")]

    async def list_document_ids(self, dataset_id: str) -> list[str]:
        return [document.id for document in await self.list_documents(dataset_id)]

    async def upload_document(self, dataset_id: str, source: SourceFile, content: bytes) -> None:
        await self._client.request(
            "POST",
            f"/api/v1/datasets/{dataset_id}/documents",
            files={"file": (source.name, content, source.media_type)},
            default_error="Upload rejected by service",
        )
        logger.debug("uploaded %s (%d bytes) to dataset %s", source.name, len(content), dataset_id)

    async def parse_documents(self, dataset_id: str, document_ids: list[str]) -> None:
        await self._client.request(
            "POST",
            f"/api/v1/datasets/{dataset_id}/chunks",
            json={"document_ids": document_ids},
            default_error="Failed to parse documents",
        )
        logger.info("triggered parsing of %d documents in dataset %s", len(document_ids), dataset_id)
