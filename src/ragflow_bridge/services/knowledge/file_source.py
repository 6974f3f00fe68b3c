from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol

from ragflow_bridge.services.knowledge.errors import SourceReadError


class FileSource(Protocol):
    async def read_bytes(self, path: str) -> bytes: ...


class LocalFileSource:
    async def read_bytes(self, path: str) -> bytes:
        source_path = Path(path)
        try:
            return await asyncio.to_thread(source_path.read_bytes)
        except OSError as exc:
            raise SourceReadError(f"Could not read {source_path}: {exc}") from exc
