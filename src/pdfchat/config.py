"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    openai_api_key: str = Field(default="", description="OpenAI API key (or dummy value for local vLLM)")
    llm_model_name: str = Field(default="gpt-4o", description="Chat model identifier")
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL for an OpenAI-compatible chat API. Leave empty to use "
            "OpenAI cloud."
        ),
    )
    llm_temperature: float = 0.7
    llm_max_tokens: int = 1000

    # Vector index
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    namespace_prefix: str = Field(
        default="doc-",
        description="Prepended to a document id to form its namespace (collection) name.",
    )

    # Embedding
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embed_batch_size: int = 64

    # Chunking / retrieval
    chunk_size: int = 1000
    chunk_overlap: int = 200
    retrieval_top_k: int = 4
    retrieval_max_concurrency: int = Field(
        default=1,
        description="1 queries documents one after another; >1 fans out with a bound.",
    )

    # Upload limits
    max_file_size_bytes: int = 10 * 1024 * 1024
    accepted_content_type: str = "application/pdf"
    max_attached_files: int = 10

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./data/pdfchat.db"
    storage_root: str = "./data/storage"
    public_base_url: str = "http://localhost:8000/storage"

    # Auth
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "pdfchat"

    # Client
    api_base_url: str = "http://localhost:8000"
    client_timeout_seconds: float = 300.0

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_chunking(self) -> Settings:
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be < chunk_size ({self.chunk_size})"
            )
        return self


# Import `settings` wherever a default is needed; components take explicit overrides.
settings = Settings()
