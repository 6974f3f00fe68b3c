from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from ragflow_bridge.config import Settings, get_settings
from ragflow_bridge.services.knowledge import (
    DatasetManager,
    IngestionPipeline,
    QAEngine,
    RemoteClient,
    SourceFile,
    StatusTracker,
    wait_until_ready,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ragflow-bridge",
        description="Upload documents to a RAGFlow knowledge base and ask questions over it",
    )
    parser.add_argument("--base-url", default=None, help="RAGFlow API base URL (overrides RAGFLOW_BASE_URL)")
    parser.add_argument("--api-key", default=None, help="RAGFlow API key (overrides RAGFLOW_API_KEY)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("datasets", help="List datasets")

    upload = subparsers.add_parser("upload", help="Create a dataset from local files and start indexing")
    upload.add_argument("name", help="Dataset (collection) name")
    upload.add_argument("files", nargs="+", help="Local files to upload")
    upload.add_argument("--wait", action="store_true", help="Poll until indexing is ready or failed")
    upload.add_argument(
        "--concurrent",
        action="store_true",
        help="Upload in parallel and report per-file results instead of stopping on the first failure",
    )

    status = subparsers.add_parser("status", help="Show indexing status of a dataset")
    status.add_argument("dataset_id")

    ask = subparsers.add_parser("ask", help="Ask a question against a dataset")
    ask.add_argument("dataset_id")
    ask.add_argument("question")
    return parser


async def _upload(args: argparse.Namespace, client: RemoteClient, settings: Settings) -> dict[str, Any]:
    datasets = DatasetManager(client, settings)
    pipeline = IngestionPipeline(datasets, concurrency=settings.upload_concurrency)
    sources = [SourceFile.from_path(path) for path in args.files]

    result: dict[str, Any]
    if args.concurrent:
        report = await pipeline.upload_each(sources, args.name)
        result = {
            "dataset_id": report.dataset_id,
            "uploaded": report.uploaded_count,
            "failed": {item.file_name: str(item.error) for item in report.failed},
        }
    else:
        result = {"dataset_id": await pipeline.upload(sources, args.name)}

    if args.wait:
        status = await wait_until_ready(
            StatusTracker(datasets),
            result["dataset_id"],
            interval_seconds=settings.poll_interval_seconds,
            max_interval_seconds=settings.poll_max_interval_seconds,
            timeout_seconds=settings.poll_timeout_seconds,
        )
        result["status"] = status.value
    return result


async def _run(args: argparse.Namespace, settings: Settings) -> Any:
    async with RemoteClient(settings) as client:
        if args.command == "datasets":
            summaries = await DatasetManager(client, settings).list_datasets()
            return [{"id": summary.id, "name": summary.name} for summary in summaries]
        if args.command == "upload":
            return await _upload(args, client, settings)
        if args.command == "status":
            status, progress = await StatusTracker(DatasetManager(client, settings)).describe(args.dataset_id)
            return {
                "status": status.value,
                "processed_chunks": progress.processed_chunks,
                "estimated_total_chunks": progress.estimated_total_chunks,
            }
        return await QAEngine(client, settings).ask(args.dataset_id, args.question)


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    settings = get_settings().with_overrides(base_url=args.base_url, api_key=args.api_key)

    try:
        output = asyncio.run(_run(args, settings))
    except Exception as exc:
        print(f"[ragflow-bridge] failed: {exc}", file=sys.stderr, flush=True)
        raise SystemExit(1) from exc

    if isinstance(output, str):
        print(output, flush=True)
    else:
        print(json.dumps(output, ensure_ascii=False), flush=True)


if __name__ == "__main__":
    main()
