from __future__ import annotations


class KnowledgeServiceError(RuntimeError):
    """Base error for every failure raised by the knowledge service core.

    ``kind`` names the failure class (transport, application, validation,
    protocol, source) so callers and logs can tell them apart without
    isinstance chains.
    """

    kind = "unknown"

    def __init__(self, message: str, *, file_name: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.file_name = file_name

    def for_file(self, file_name: str) -> KnowledgeServiceError:
        message = f"Failed to upload {file_name}: {self.message}"
        labelled = type(self).__new__(type(self), message)
        labelled.__dict__.update(self.__dict__)
        labelled.message = message
        labelled.file_name = file_name
        labelled.__cause__ = self
        return labelled


class TransportError(KnowledgeServiceError):
    kind = "transport"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        file_name: str | None = None,
    ) -> None:
        super().__init__(message, file_name=file_name)
        self.status_code = status_code


class ApplicationError(KnowledgeServiceError):
    kind = "application"

    def __init__(
        self,
        message: str,
        *,
        code: int,
        service_message: str | None = None,
        file_name: str | None = None,
    ) -> None:
        super().__init__(message, file_name=file_name)
        self.code = code
        self.service_message = service_message


class ValidationError(KnowledgeServiceError, ValueError):
    kind = "validation"


class ProtocolError(KnowledgeServiceError):
    kind = "protocol"


class SourceReadError(KnowledgeServiceError):
    kind = "source"


class IndexingTimeoutError(KnowledgeServiceError):
    kind = "timeout"
