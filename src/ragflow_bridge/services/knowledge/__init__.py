from ragflow_bridge.services.knowledge.client import RemoteClient
from ragflow_bridge.services.knowledge.datasets import DatasetManager
from ragflow_bridge.services.knowledge.errors import (
    ApplicationError,
    IndexingTimeoutError,
    KnowledgeServiceError,
    ProtocolError,
    SourceReadError,
    TransportError,
    ValidationError,
)
from ragflow_bridge.services.knowledge.ingest import IngestionPipeline
from ragflow_bridge.services.knowledge.polling import wait_until_ready
from ragflow_bridge.services.knowledge.qa import NO_RELEVANT_INFORMATION, QAEngine
from ragflow_bridge.services.knowledge.status import StatusTracker
from ragflow_bridge.services.knowledge.types import (
    Answer,
    BatchUploadReport,
    Dataset,
    DatasetSummary,
    IndexingProgress,
    LifecycleStatus,
    SourceFile,
)

__all__ = [
    "Answer",
    "ApplicationError",
    "BatchUploadReport",
    "Dataset",
    "DatasetManager",
    "DatasetSummary",
    "IndexingProgress",
    "IndexingTimeoutError",
    "IngestionPipeline",
    "KnowledgeServiceError",
    "LifecycleStatus",
    "NO_RELEVANT_INFORMATION",
    "ProtocolError",
    "QAEngine",
    "RemoteClient",
    "SourceFile",
    "SourceReadError",
    "StatusTracker",
    "TransportError",
    "ValidationError",
    "wait_until_ready",
]
