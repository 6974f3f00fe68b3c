from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from ragflow_bridge.services.knowledge.datasets import DatasetManager
from ragflow_bridge.services.knowledge.errors import (
    KnowledgeServiceError,
    SourceReadError,
    ValidationError,
)
from ragflow_bridge.services.knowledge.file_source import FileSource, LocalFileSource
from ragflow_bridge.services.knowledge.types import (
    BatchUploadReport,
    FileUploadResult,
    SourceFile,
)

logger = logging.getLogger(__name__)


def _validate_request(files: Sequence[SourceFile], collection_name: str) -> None:
    if not files:
        raise ValidationError("files must not be empty")
    if not collection_name.strip():
        raise ValidationError("collection_name must not be empty")


class IngestionPipeline:
    """Turns a batch of local files into a newly created, indexing dataset.

    ``upload`` is strictly sequential and fails fast on the first bad file;
    ``upload_each`` uploads with bounded concurrency and reports per file.
    Neither removes the dataset when a later step fails.
    """

    def __init__(
        self,
        datasets: DatasetManager,
        *,
        file_source: FileSource | None = None,
        concurrency: int = 4,
    ) -> None:
        self._datasets = datasets
        self._file_source = file_source or LocalFileSource()
        self._concurrency = concurrency

    async def upload(self, files: Sequence[SourceFile], collection_name: str) -> str:
        _validate_request(files, collection_name)
        logger.info(
            "ingesting %d files into collection=%s: %s",
            len(files),
            collection_name,
            ", ".join(source.name for source in files),
        )

        dataset_id = await self._datasets.create_dataset(collection_name)

        for index, source in enumerate(files, start=1):
            logger.debug("uploading file %d/%d name=%s", index, len(files), source.name)
            try:
                await self._upload_one(dataset_id, source)
            except KnowledgeServiceError as exc:
                logger.warning("aborting ingestion at %s: %s", source.name, exc)
                raise exc.for_file(source.name)

        await self._trigger_indexing(dataset_id)
        logger.info("ingestion finished dataset_id=%s", dataset_id)
        return dataset_id

    async def upload_each(
        self,
        files: Sequence[SourceFile],
        collection_name: str,
        *,
        concurrency: int | None = None,
    ) -> BatchUploadReport:
        _validate_request(files, collection_name)
        limit = self._concurrency if concurrency is None else concurrency
        if limit < 1:
            raise ValidationError("concurrency must be >= 1")

        dataset_id = await self._datasets.create_dataset(collection_name)
        semaphore = asyncio.Semaphore(limit)

        async def upload_with_limit(source: SourceFile) -> FileUploadResult:
            async with semaphore:
                try:
                    await self._upload_one(dataset_id, source)
                except KnowledgeServiceError as exc:
                    logger.warning("upload of %s failed: %s", source.name, exc)
                    return FileUploadResult(
                        file_name=source.name,
                        uploaded=False,
                        error=exc.for_file(source.name),
                    )
            return FileUploadResult(file_name=source.name, uploaded=True)

        results = list(await asyncio.gather(*(upload_with_limit(source) for source in files)))

        document_ids = await self._trigger_indexing(dataset_id)
        report = BatchUploadReport(
            dataset_id=dataset_id,
            results=results,
            document_ids=document_ids,
        )
        logger.info(
            "batch ingestion finished dataset_id=%s uploaded=%d failed=%d",
            dataset_id,
            report.uploaded_count,
            len(report.failed),
        )
        return report

    async def _upload_one(self, dataset_id: str, source: SourceFile) -> None:
        try:
            content = await self._file_source.read_bytes(source.path)
        except KnowledgeServiceError:
            raise
        except Exception as exc:
            raise SourceReadError(f"Could not read {source.path}: {exc}") from exc
        await self._datasets.upload_document(dataset_id, source, content)

    async def _trigger_indexing(self, dataset_id: str) -> list[str]:
        document_ids = await self._datasets.list_document_ids(dataset_id)
        logger.debug("dataset %s reports %d documents", dataset_id, len(document_ids))
        if document_ids:
            await self._datasets.parse_documents(dataset_id, document_ids)
        else:
            logger.info("dataset %s has no stored documents; skipping parse", dataset_id)
        return document_ids
