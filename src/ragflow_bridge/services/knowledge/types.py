from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import mimetypes
from pathlib import Path
from typing import Any

from ragflow_bridge.services.knowledge.errors import KnowledgeServiceError, ProtocolError

# Each indexed document is assumed to yield roughly this many chunks.
ESTIMATED_CHUNKS_PER_DOCUMENT = 10


def _require_id(payload: Any, what: str) -> str:
    identifier = payload.get("id") if isinstance(payload, dict) else None
    if not isinstance(identifier, str) or not identifier:
        raise ProtocolError(f"Invalid {what} payload: missing id")
    return identifier


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class DatasetSummary:
    id: str
    name: str

    @classmethod
    def from_payload(cls, payload: Any) -> DatasetSummary:
        return cls(id=_require_id(payload, "dataset"), name=_as_str(payload.get("name")))


@dataclass(frozen=True)
class Dataset:
    id: str
    name: str
    status: str
    chunk_count: int
    document_count: int
    chunk_method: str = ""
    embedding_model: str = ""
    parser_config: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> Dataset:
        identifier = _require_id(payload, "dataset")
        parser_config = payload.get("parser_config")
        return cls(
            id=identifier,
            name=_as_str(payload.get("name")),
            status=_as_str(payload.get("status")),
            chunk_count=_as_int(payload.get("chunk_count")),
            document_count=_as_int(payload.get("document_count")),
            chunk_method=_as_str(payload.get("chunk_method")),
            embedding_model=_as_str(payload.get("embedding_model")),
            parser_config=dict(parser_config) if isinstance(parser_config, dict) else {},
        )


@dataclass(frozen=True)
class SourceFile:
    path: str
    name: str
    media_type: str

    @classmethod
    def from_path(cls, path: str | Path, *, media_type: str | None = None) -> SourceFile:
        resolved = Path(path)
        guessed, _ = mimetypes.guess_type(resolved.name)
        return cls(
            path=str(resolved),
            name=resolved.name,
            media_type=media_type or guessed or "application/octet-stream",
        )


@dataclass(frozen=True)
class RemoteDocument:
    id: str
    name: str
    location: str
    run: str
    chunk_count: int

    @classmethod
    def from_payload(cls, payload: Any) -> RemoteDocument:
        return cls(
            id=_require_id(payload, "document"),
            name=_as_str(payload.get("name")),
            location=_as_str(payload.get("location")),
            run=_as_str(payload.get("run")),
            chunk_count=_as_int(payload.get("chunk_count")),
        )


@dataclass(frozen=True)
class RetrievedPassage:
    content: str
    document_id: str
    document_name: str
    similarity: float
    highlight: str | None = None


@dataclass(frozen=True)
class Answer:
    question: str
    answer: str
    created_at: datetime


@dataclass(frozen=True)
class IndexingProgress:
    processed_chunks: int
    # Heuristic (document_count * ESTIMATED_CHUNKS_PER_DOCUMENT), never a precise bound.
    estimated_total_chunks: int
    finished: bool


class LifecycleStatus(str, Enum):
    READY = "ready"
    PROCESSING = "processing"
    FAILED = "failed"


@dataclass(frozen=True)
class FileUploadResult:
    file_name: str
    uploaded: bool
    error: KnowledgeServiceError | None = None


@dataclass(frozen=True)
class BatchUploadReport:
    dataset_id: str
    results: list[FileUploadResult]
    document_ids: list[str]

    @property
    def uploaded_count(self) -> int:
        return sum(1 for result in self.results if result.uploaded)

    @property
    def failed(self) -> list[FileUploadResult]:
        return [result for result in self.results if not result.uploaded]
