from pathlib import Path

import pytest

from ragflow_bridge.services.knowledge import SourceFile, SourceReadError
from ragflow_bridge.services.knowledge.file_source import LocalFileSource


@pytest.mark.asyncio
async def test_local_file_source_reads_bytes(tmp_path: Path) -> None:
    path = tmp_path / "paper.pdf"
    path.write_bytes(b"%PDF-1.7 body")

    assert await LocalFileSource().read_bytes(str(path)) == b"%PDF-1.7 body"


@pytest.mark.asyncio
async def test_local_file_source_wraps_os_errors(tmp_path: Path) -> None:
    with pytest.raises(SourceReadError, match="missing.pdf"):
        await LocalFileSource().read_bytes(str(tmp_path / "missing.pdf"))


def test_source_file_from_path_guesses_name_and_media_type(tmp_path: Path) -> None:
    source = SourceFile.from_path(tmp_path / "paper.pdf")

    assert source.name == "paper.pdf"
    assert source.media_type == "application/pdf"
    assert SourceFile.from_path("notes.unknownext").media_type == "application/octet-stream"
