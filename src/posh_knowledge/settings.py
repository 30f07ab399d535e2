from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .schema import CorpusTag


@dataclass(slots=True)
class EmbeddingSettings:
    """Query embedding provider configuration."""

    provider: str = "openai"
    model: str = "text-embedding-ada-002"
    local_model: str = "all-MiniLM-L6-v2"
    dimensions: int = 1536
    max_input_chars: int = 8000
    request_timeout_s: float = 10.0
    max_retries: int = 2
    cache_size: int = 256


@dataclass(slots=True)
class StoreSettings:
    """Chroma connection and per-corpus collection names."""

    persist_dir: str = "artifacts/chroma"
    host: str = ""
    port: int = 8000
    legal_collection: str = "legal_sections"
    case_law_collection: str = "case_law"
    playbook_collection: str = "playbooks"


@dataclass(slots=True)
class SearchSettings:
    """Fan-out limits and timeouts for multi-corpus search."""

    default_max_results: int = 5
    max_results_limit: int = 50
    adapter_timeout_s: float = 5.0
    adapter_timeouts: dict[CorpusTag, float] = field(default_factory=dict)
    max_workers: int = 4
    log_level: str = "INFO"
    tracing_endpoint: str = ""
    service_name: str = "posh-knowledge"

    def timeout_for(self, tag: CorpusTag) -> float:
        return self.adapter_timeouts.get(tag, self.adapter_timeout_s)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _adapter_timeouts_from_env() -> dict[CorpusTag, float]:
    # CORPUS_TIMEOUT_SECONDS_CASE_LAW=2.5 overrides the case-law adapter only.
    timeouts: dict[CorpusTag, float] = {}
    for tag in CorpusTag:
        name = f"CORPUS_TIMEOUT_SECONDS_{tag.value.upper()}"
        if os.getenv(name):
            timeouts[tag] = _env_float(name, 0.0)
    return timeouts


def load_settings() -> tuple[EmbeddingSettings, StoreSettings, SearchSettings]:
    """Load environment-backed settings and return typed config objects.

    Returns:
        Tuple containing embedding, vector store, and search settings.

    Raises:
        ValueError: If a numeric environment variable cannot be parsed.
    """
    load_dotenv()
    return (
        EmbeddingSettings(
            provider=os.getenv("EMBEDDING_PROVIDER", "openai"),
            model=os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-ada-002"),
            local_model=os.getenv("LOCAL_EMBEDDING_MODEL", "all-MiniLM-L6-v2"),
            dimensions=_env_int("EMBEDDING_DIMENSIONS", 1536),
            request_timeout_s=_env_float("EMBEDDING_TIMEOUT_SECONDS", 10.0),
            cache_size=_env_int("EMBEDDING_CACHE_SIZE", 256),
        ),
        StoreSettings(
            persist_dir=os.getenv("CHROMA_PERSIST_DIR", "artifacts/chroma"),
            host=os.getenv("CHROMA_HOST", ""),
            port=_env_int("CHROMA_PORT", 8000),
        ),
        SearchSettings(
            adapter_timeout_s=_env_float("CORPUS_TIMEOUT_SECONDS", 5.0),
            adapter_timeouts=_adapter_timeouts_from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            tracing_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", ""),
            service_name=os.getenv("OTEL_SERVICE_NAME", "posh-knowledge"),
        ),
    )


def configure_logging(level: str = "INFO") -> None:
    """Install a root stream handler for scripts; the library never calls this on import."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
