import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# This file: src/docrag/config/settings.py
SERVER_ROOT = Path(__file__).resolve().parent.parent.parent.parent
ENV_PATH = SERVER_ROOT / ".env"

if ENV_PATH.exists():
    load_dotenv(ENV_PATH)
else:
    load_dotenv()


class Settings(BaseModel):
    """Global application settings, read from the environment."""

    # Environment
    ENV: str = Field(default="development", description="Environment: development, production, testing")
    LOG_LEVEL: str = Field(default="INFO", description="Log level")
    LOG_FILE: Optional[str] = Field(default=None, description="Optional rotating log file")

    ROOT_DIR: Path = Field(default=SERVER_ROOT, description="Project root directory")

    # Embedding provider
    EMBEDDING_PROVIDER: str = Field(default="gemini", description="gemini, openai or mock")
    EMBEDDING_MODEL: str = Field(default="text-embedding-004", description="Embedding model identifier")
    EMBEDDING_API_KEY: Optional[str] = Field(default=None, description="Provider credential")
    EMBEDDING_BASE_URL: Optional[str] = Field(default=None, description="Override provider base URL")
    MAX_PAYLOAD_BYTES: int = Field(default=10_000, description="Provider request payload ceiling")
    REQUEST_TIMEOUT: float = Field(default=30.0, description="Per-call timeout in seconds")

    # Pipeline
    MAX_CHUNK_BYTES: Optional[int] = Field(default=None, description="Chunk bound; ceiling minus 10% if unset")
    MAX_CONCURRENT_CALLS: int = Field(default=8, description="Embedding calls in flight")
    EMBED_MAX_ATTEMPTS: int = Field(default=1, description="Attempts per chunk (1 = fail fast)")

    # Ranking
    TOP_N: int = Field(default=5, description="Chunks kept per query")
    SIMILARITY_THRESHOLD: float = Field(default=0.4, description="Scores at or below are dropped")
    SELECTION_ORDER: str = Field(default="cap_then_filter", description="cap_then_filter or filter_then_cap")
    QUERY_MODE: str = Field(default="combined", description="combined or per_question")

    # Cache
    CACHE_BACKEND: str = Field(default="sqlite", description="sqlite, sqlmodel or memory")
    CACHE_DB_PATH: str = Field(default="storage/embeddings.db", description="SQLite cache file")
    CACHE_DATABASE_URL: Optional[str] = Field(default=None, description="SQLAlchemy URL for the sqlmodel backend")

    model_config = {
        "frozen": True,
        "arbitrary_types_allowed": True
    }


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


def load_settings() -> Settings:
    """Load settings from environment variables."""
    return Settings(
        ENV=os.getenv("ENV", "development"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        LOG_FILE=os.getenv("LOG_FILE"),
        ROOT_DIR=SERVER_ROOT,
        EMBEDDING_PROVIDER=os.getenv("EMBEDDING_PROVIDER", "gemini"),
        EMBEDDING_MODEL=os.getenv("EMBEDDING_MODEL", "text-embedding-004"),
        EMBEDDING_API_KEY=os.getenv("EMBEDDING_API_KEY") or os.getenv("GEMINI_KEY"),
        EMBEDDING_BASE_URL=os.getenv("EMBEDDING_BASE_URL"),
        MAX_PAYLOAD_BYTES=int(os.getenv("MAX_PAYLOAD_BYTES", "10000")),
        REQUEST_TIMEOUT=float(os.getenv("REQUEST_TIMEOUT", "30")),
        MAX_CHUNK_BYTES=_optional_int("MAX_CHUNK_BYTES"),
        MAX_CONCURRENT_CALLS=int(os.getenv("MAX_CONCURRENT_CALLS", "8")),
        EMBED_MAX_ATTEMPTS=int(os.getenv("EMBED_MAX_ATTEMPTS", "1")),
        TOP_N=int(os.getenv("TOP_N", "5")),
        SIMILARITY_THRESHOLD=float(os.getenv("SIMILARITY_THRESHOLD", "0.4")),
        SELECTION_ORDER=os.getenv("SELECTION_ORDER", "cap_then_filter"),
        QUERY_MODE=os.getenv("QUERY_MODE", "combined"),
        CACHE_BACKEND=os.getenv("CACHE_BACKEND", "sqlite"),
        CACHE_DB_PATH=os.getenv("CACHE_DB_PATH", str(SERVER_ROOT / "storage/embeddings.db")),
        CACHE_DATABASE_URL=os.getenv("CACHE_DATABASE_URL"),
    )
