from collections.abc import AsyncIterator
from typing import Annotated, Any

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from ragflow_bridge.config import Settings, get_settings
from ragflow_bridge.services.knowledge import (
    ApplicationError,
    DatasetManager,
    IngestionPipeline,
    KnowledgeServiceError,
    ProtocolError,
    QAEngine,
    RemoteClient,
    SourceFile,
    SourceReadError,
    StatusTracker,
    TransportError,
    ValidationError,
)

app = FastAPI(title="RAGFlow Bridge API", version="0.1.0")


class SourceFileRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str = Field(min_length=1)
    name: str | None = None
    media_type: str | None = None

    def to_source_file(self) -> SourceFile:
        source = SourceFile.from_path(self.path, media_type=self.media_type)
        if self.name:
            return SourceFile(path=source.path, name=self.name, media_type=source.media_type)
        return source


class IngestRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    collection_name: str = Field(min_length=1)
    files: list[SourceFileRequest] = Field(min_length=1)


class AskRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    question: str = Field(min_length=1)


async def get_remote_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> AsyncIterator[RemoteClient]:
    async with RemoteClient(settings) as client:
        yield client


def get_dataset_manager(
    client: Annotated[RemoteClient, Depends(get_remote_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> DatasetManager:
    return DatasetManager(client, settings)


def get_ingestion_pipeline(
    datasets: Annotated[DatasetManager, Depends(get_dataset_manager)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> IngestionPipeline:
    return IngestionPipeline(datasets, concurrency=settings.upload_concurrency)


def get_status_tracker(
    datasets: Annotated[DatasetManager, Depends(get_dataset_manager)],
) -> StatusTracker:
    return StatusTracker(datasets)


def get_qa_engine(
    client: Annotated[RemoteClient, Depends(get_remote_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> QAEngine:
    return QAEngine(client, settings)


def _to_http_error(exc: KnowledgeServiceError) -> HTTPException:
    if isinstance(exc, (ValidationError, SourceReadError)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, TransportError):
        return HTTPException(status_code=503, detail=f"Knowledge service unavailable: {exc}")
    if isinstance(exc, (ApplicationError, ProtocolError)):
        return HTTPException(status_code=502, detail=f"Knowledge service error: {exc}")
    return HTTPException(status_code=500, detail=str(exc))


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/datasets")
async def list_datasets(
    datasets: Annotated[DatasetManager, Depends(get_dataset_manager)],
) -> list[dict[str, str]]:
    try:
        summaries = await datasets.list_datasets()
    except KnowledgeServiceError as exc:
        raise _to_http_error(exc) from exc

    return [{"id": summary.id, "name": summary.name} for summary in summaries]


@app.post("/datasets/ingest")
async def ingest(
    request: IngestRequest,
    pipeline: Annotated[IngestionPipeline, Depends(get_ingestion_pipeline)],
) -> dict[str, str]:
    try:
        dataset_id = await pipeline.upload(
            [item.to_source_file() for item in request.files],
            request.collection_name,
        )
    except KnowledgeServiceError as exc:
        raise _to_http_error(exc) from exc

    return {"dataset_id": dataset_id}


@app.get("/datasets/{dataset_id}/status")
async def dataset_status(
    dataset_id: str,
    tracker: Annotated[StatusTracker, Depends(get_status_tracker)],
) -> dict[str, Any]:
    try:
        status, progress = await tracker.describe(dataset_id)
    except KnowledgeServiceError as exc:
        raise _to_http_error(exc) from exc

    return {
        "status": status.value,
        "processed_chunks": progress.processed_chunks,
        "estimated_total_chunks": progress.estimated_total_chunks,
        "finished": progress.finished,
    }


@app.post("/datasets/{dataset_id}/ask")
async def ask(
    dataset_id: str,
    request: AskRequest,
    engine: Annotated[QAEngine, Depends(get_qa_engine)],
) -> dict[str, str]:
    if not request.question.strip():
        raise HTTPException(status_code=400, detail="question must not be empty")

    try:
        answer = await engine.answer(dataset_id, request.question)
    except KnowledgeServiceError as exc:
        raise _to_http_error(exc) from exc

    return {
        "question": answer.question,
        "answer": answer.answer,
        "created_at": answer.created_at.isoformat(),
    }


def run() -> None:
    import uvicorn

    uvicorn.run("ragflow_bridge.main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    run()
