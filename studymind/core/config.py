# Fichier: studymind/core/config.py
from pydantic_settings import BaseSettings
from typing import Optional, List
from pydantic import ValidationError, field_validator
import sys


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./studymind_local.db"
    ENVIRONMENT: str = "development"

    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:8000",
        "http://127.0.0.1:5173",
    ]

    # --- Auth configuration ---
    # Key used to sign the JWTs.
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # --- AI gateway ---
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_CHAT_MODEL: str = "gpt-4o-mini"
    USE_REMOTE_EMBEDDINGS: bool = False
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_DIMENSION: int = 384
    AI_REQUEST_TIMEOUT_SECONDS: float = 30.0
    NOTE_CONTEXT_MAX_CHARS: int = 6000

    # --- Review ---
    # Demo/read-only mode: mutations are simulated locally, nothing reaches the database.
    READ_ONLY_DEMO: bool = False
    REVIEW_HISTORY_PAGE_SIZE: int = 20

    # Performance instrumentation
    SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS: int = 300
    DATABASE_CONNECTION_MAX_RETRIES: int = 1
    DATABASE_CONNECTION_RETRY_BACKOFF_SECONDS: float = 1.0

    class Config:
        env_file = ".env"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        """Rewrite legacy ``postgres://`` URLs to ``postgresql://``.

        Managed Postgres providers still hand out the ``postgres`` scheme, an
        alias SQLAlchemy no longer ships. Async driver suffixes are dropped too
        since the service runs on the synchronous engine only.
        """

        if not isinstance(value, str):
            return value

        replacements = {
            "postgres://": "postgresql://",
            "postgresql+asyncpg://": "postgresql://",
            "sqlite+aiosqlite://": "sqlite://",
        }

        for prefix, target in replacements.items():
            if value.startswith(prefix):
                return target + value[len(prefix) :]

        return value

    @field_validator("REVIEW_HISTORY_PAGE_SIZE")
    @classmethod
    def _positive_page_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("REVIEW_HISTORY_PAGE_SIZE must be positive")
        return value


def _log_settings_validation_error(exc: ValidationError) -> None:
    """Pretty-print missing or invalid environment variables.

    The error bubbles up during module import, so we print the structured
    payload to stderr before re-raising to make the faulty variable obvious.
    """

    header = "Configuration error while loading environment variables:"
    print(header, file=sys.stderr)

    details = exc.errors()
    if details:
        for error in details:
            location = ".".join(str(part) for part in error.get("loc", ()))
            message = error.get("msg", "Unknown validation error")
            type_name = error.get("type")
            hint_parts = [message]
            if type_name:
                hint_parts.append(f"(type={type_name})")
            print(f"  - {location}: {' '.join(hint_parts)}", file=sys.stderr)
    else:
        print(exc, file=sys.stderr)


try:
    settings = Settings()
except ValidationError as exc:  # pragma: no cover - exercised at runtime
    _log_settings_validation_error(exc)
    raise
