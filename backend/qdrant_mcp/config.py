"""Application Configuration - environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache): single instance per process
    - vector_size is shared by the embedder check and default collection creation
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Server
    host: str = "0.0.0.0"  # nosec B104
    port: int = 3456
    server_name: str = "qdrant-http-mcp"
    server_version: str = "1.0.0"
    shutdown_grace_seconds: int = 5

    # Qdrant
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: str = ""
    collection_name: str = "agent-ren3"
    vector_size: int = Field(384, ge=1)
    vector_distance: Literal["Cosine", "Euclid", "Dot", "Manhattan"] = "Cosine"
    qdrant_timeout_seconds: float = 30.0
    qdrant_max_retries: int = 3
    qdrant_base_delay_ms: int = 200
    qdrant_max_delay_ms: int = 5_000

    @field_validator("qdrant_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # Embeddings
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"

    # Transport
    tool_name_prefix: str = "qdrant-"
    sse_path: str = "/mcp"
    messages_path: str = "/messages"
    sse_keepalive_seconds: float = 15.0
    session_queue_size: int = Field(256, ge=1)
    delivery_timeout_seconds: float = 10.0

    # API
    cors_origins: list[str] = ["*"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
