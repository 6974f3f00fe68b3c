from __future__ import annotations

import logging
from typing import Any

import httpx

from ragflow_bridge.config import Settings
from ragflow_bridge.services.knowledge.errors import (
    ApplicationError,
    ProtocolError,
    TransportError,
)

logger = logging.getLogger(__name__)


class RemoteClient:
    """Authenticated transport to the RAGFlow HTTP API.

    Parses the ``{code, message, data}`` envelope and turns failures into
    :mod:`errors` types. Retry policy belongs to callers.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = settings.ragflow_base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {settings.ragflow_api_key}"},
            timeout=settings.ragflow_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> RemoteClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        default_error: str = "Request failed",
    ) -> Any:
        payload = await self.request_raw(
            method,
            path,
            json=json,
            params=params,
            files=files,
            default_error=default_error,
        )
        code = payload.get("code")
        if not isinstance(code, int) or isinstance(code, bool):
            raise ProtocolError(f"Invalid response envelope from {path}: missing code")
        return payload.get("data")

    async def request_raw(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        default_error: str = "Request failed",
    ) -> dict[str, Any]:
        logger.debug("ragflow request %s %s", method, path)
        try:
            response = await self._client.request(
                method,
                path,
                json=json,
                params=params,
                files=files,
            )
        except httpx.TimeoutException as exc:
            logger.warning("ragflow request %s %s timed out", method, path)
            raise TransportError(f"Request to {path} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.warning("ragflow request %s %s failed: %s", method, path, exc)
            raise TransportError(f"Request to {path} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(
                f"Malformed response from {path}: HTTP {response.status_code}",
                status_code=response.status_code,
            ) from exc

        code = payload.get("code") if isinstance(payload, dict) else None
        if isinstance(code, int) and not isinstance(code, bool) and code != 0:
            service_message = payload.get("message")
            if not isinstance(service_message, str) or not service_message:
                service_message = None
            logger.warning(
                "ragflow request %s %s returned code=%s message=%s",
                method,
                path,
                code,
                service_message,
            )
            raise ApplicationError(
                service_message or default_error,
                code=code,
                service_message=service_message,
            )

        if response.is_error:
            raise TransportError(
                f"HTTP {response.status_code} from {path}",
                status_code=response.status_code,
            )

        if not isinstance(payload, dict):
            raise ProtocolError(f"Invalid response payload from {path}: expected an object")

        return payload
