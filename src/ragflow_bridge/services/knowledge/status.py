from __future__ import annotations

from ragflow_bridge.services.knowledge.datasets import DatasetManager
from ragflow_bridge.services.knowledge.types import (
    ESTIMATED_CHUNKS_PER_DOCUMENT,
    Dataset,
    IndexingProgress,
    LifecycleStatus,
)

FINISHED_STATUS = "finished"
ERROR_STATUS = "error"


def progress_from_dataset(dataset: Dataset) -> IndexingProgress:
    return IndexingProgress(
        processed_chunks=dataset.chunk_count,
        estimated_total_chunks=dataset.document_count * ESTIMATED_CHUNKS_PER_DOCUMENT,
        finished=dataset.status == FINISHED_STATUS,
    )


def lifecycle_from_dataset(dataset: Dataset) -> LifecycleStatus:
    progress = progress_from_dataset(dataset)
    if progress.finished:
        return LifecycleStatus.READY
    if dataset.status == ERROR_STATUS and progress.processed_chunks == 0:
        return LifecycleStatus.FAILED
    return LifecycleStatus.PROCESSING


class StatusTracker:
    """Single-shot reads of a dataset's indexing state. Nothing is cached."""

    def __init__(self, datasets: DatasetManager) -> None:
        self._datasets = datasets

    async def check_status(self, dataset_id: str) -> IndexingProgress:
        return progress_from_dataset(await self._datasets.get_dataset(dataset_id))

    async def get_lifecycle_status(self, dataset_id: str) -> LifecycleStatus:
        return lifecycle_from_dataset(await self._datasets.get_dataset(dataset_id))

    async def describe(self, dataset_id: str) -> tuple[LifecycleStatus, IndexingProgress]:
        dataset = await self._datasets.get_dataset(dataset_id)
        return lifecycle_from_dataset(dataset), progress_from_dataset(dataset)
