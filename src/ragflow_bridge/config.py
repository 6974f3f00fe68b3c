from dataclasses import dataclass, replace
from functools import lru_cache
import os


def _to_int(value: str | None, *, default: int, minimum: int) -> int:
    if value is None:
        return default
    parsed = int(value)
    return max(minimum, parsed)


def _to_float(value: str | None, *, default: float, minimum: float) -> float:
    if value is None:
        return default
    parsed = float(value)
    return max(minimum, parsed)


@dataclass(frozen=True)
class Settings:
    ragflow_base_url: str = "http://127.0.0.1:8000"
    ragflow_api_key: str = ""
    ragflow_timeout_seconds: float = 30.0
    ragflow_language: str = "Chinese"
    ragflow_embedding_model: str = "BAAI/bge-zh-v1.5"
    ragflow_chat_model: str = "gpt-3.5-turbo"
    upload_concurrency: int = 4
    poll_interval_seconds: float = 2.0
    poll_max_interval_seconds: float = 30.0
    poll_timeout_seconds: float = 600.0

    def with_overrides(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
    ) -> "Settings":
        """Copy of these settings pointing at another endpoint or credential."""
        return replace(
            self,
            ragflow_base_url=base_url if base_url is not None else self.ragflow_base_url,
            ragflow_api_key=api_key if api_key is not None else self.ragflow_api_key,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings(
        ragflow_base_url=os.getenv("RAGFLOW_BASE_URL", "http://127.0.0.1:8000"),
        ragflow_api_key=os.getenv("RAGFLOW_API_KEY", ""),
        ragflow_timeout_seconds=_to_float(
            os.getenv("RAGFLOW_TIMEOUT_SECONDS"), default=30.0, minimum=1.0
        ),
        ragflow_language=os.getenv("RAGFLOW_LANGUAGE", "Chinese"),
        ragflow_embedding_model=os.getenv("RAGFLOW_EMBEDDING_MODEL", "BAAI/bge-zh-v1.5"),
        ragflow_chat_model=os.getenv("RAGFLOW_CHAT_MODEL", "gpt-3.5-turbo"),
        upload_concurrency=_to_int(
            os.getenv("RAGFLOW_UPLOAD_CONCURRENCY"), default=4, minimum=1
        ),
        poll_interval_seconds=_to_float(
            os.getenv("RAGFLOW_POLL_INTERVAL_SECONDS"), default=2.0, minimum=0.1
        ),
        poll_max_interval_seconds=_to_float(
            os.getenv("RAGFLOW_POLL_MAX_INTERVAL_SECONDS"), default=30.0, minimum=0.5
        ),
        poll_timeout_seconds=_to_float(
            os.getenv("RAGFLOW_POLL_TIMEOUT_SECONDS"), default=600.0, minimum=1.0
        ),
    )
