"""Application configuration loaded from the environment."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv(override=True)


class Dialect(str, Enum):
    """Supported database dialects."""
    MYSQL = "mysql"
    MSSQL = "mssql"


@dataclass(frozen=True)
class IdentityLookup:
    """How to read the id generated by an INSERT when the driver has no cursor.lastrowid.

    Attributes:
        query: Query returning the generated id (0 or NULL when none was generated)
        reset: Run before the INSERT so an id from an earlier statement on the
            same pooled connection cannot be reported
        same_batch: Append ``query`` to the INSERT batch; needed where the id
            function is scoped to the batch (SQL Server ``SCOPE_IDENTITY()``)
    """
    query: str
    reset: Optional[str] = None
    same_batch: bool = False


IDENTITY_LOOKUPS: dict[Dialect, IdentityLookup] = {
    Dialect.MYSQL: IdentityLookup(query="SELECT LAST_INSERT_ID()", reset="SELECT LAST_INSERT_ID(0)"),
    Dialect.MSSQL: IdentityLookup(query="SELECT CAST(SCOPE_IDENTITY() AS BIGINT)", same_batch=True),
}

# SQLAlchemy URL prefix per dialect; connections come from the pyodbc creator
ENGINE_URLS: dict[Dialect, str] = {
    Dialect.MYSQL: "mysql+pyodbc://",
    Dialect.MSSQL: "mssql+pyodbc://",
}


@dataclass(frozen=True)
class DatabaseConnection:
    """Configuration for the database connection."""
    host: str
    database: str
    port: int = 3306
    user: str = ""
    password: str = ""
    driver: str = "MySQL ODBC 8.0 Unicode Driver"
    timeout: int = 30
    raw_connection_string: str = ""

    @property
    def connection_string(self) -> str:
        """Generate pyodbc connection string."""
        if self.raw_connection_string:
            return self.raw_connection_string
        return (
            f"DRIVER={{{self.driver}}};"
            f"SERVER={self.host};"
            f"PORT={self.port};"
            f"DATABASE={self.database};"
            f"UID={self.user};"
            f"PWD={self.password};"
        )


@dataclass(frozen=True)
class Settings:
    """Application settings."""
    # Database
    connection: DatabaseConnection
    dialect: Dialect
    db_schema: str
    pool_size: int
    pool_timeout: float

    # Query settings
    max_rows: int

    # LLM settings
    llm_base_url: str
    llm_api_key: str
    llm_model: str
    request_timeout: int
    prompt_examples_path: str

    # HTTP
    cors_origins: list[str]
    log_level: str
    port: int

    @property
    def identity_lookup(self) -> Optional[IdentityLookup]:
        return IDENTITY_LOOKUPS.get(self.dialect)

    @property
    def engine_url(self) -> str:
        return ENGINE_URLS[self.dialect]


def _parse_dialect(value: str) -> Dialect:
    try:
        return Dialect(value.strip().lower())
    except ValueError:
        return Dialect.MYSQL


def get_settings() -> Settings:
    """Load settings from environment variables."""
    base_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    default_examples = os.path.join(base_dir, "llm", "prompt_examples.yaml")

    connection = DatabaseConnection(
        host=os.getenv("DB_HOST", "localhost"),
        database=os.getenv("DB_NAME", "app"),
        port=int(os.getenv("DB_PORT", "3306")),
        user=os.getenv("DB_USER", "root"),
        password=os.getenv("DB_PASSWORD", ""),
        driver=os.getenv("DB_DRIVER", "MySQL ODBC 8.0 Unicode Driver"),
        timeout=int(os.getenv("DB_TIMEOUT", "30")),
        raw_connection_string=os.getenv("DB_CONNECTION_STRING", ""),
    )

    cors_origins = [
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
    ]

    return Settings(
        connection=connection,
        dialect=_parse_dialect(os.getenv("DB_DIALECT", "mysql")),
        db_schema=os.getenv("DB_SCHEMA", ""),
        pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
        pool_timeout=float(os.getenv("DB_POOL_TIMEOUT", "30")),

        max_rows=int(os.getenv("MAX_ROWS", "0")),

        llm_base_url=os.getenv("LLM_BASE_URL", "https://api.openai.com").rstrip("/"),
        llm_api_key=os.getenv("LLM_API_KEY", os.getenv("OPENAI_API_KEY", "")),
        llm_model=os.getenv("LLM_MODEL", "gpt-3.5-turbo"),
        request_timeout=int(os.getenv("REQUEST_TIMEOUT", "90")),
        prompt_examples_path=os.getenv("PROMPT_EXAMPLES_PATH", default_examples),

        cors_origins=cors_origins or ["*"],
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=int(os.getenv("PORT", "4000")),
    )


# Singleton for caching settings
_settings_cache: Optional[Settings] = None


def get_cached_settings() -> Settings:
    """Get cached settings (loads once)."""
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = get_settings()
    return _settings_cache


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    global _settings_cache
    _settings_cache = None
