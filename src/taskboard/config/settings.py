"""Application settings — Pydantic-based configuration with YAML and env var support.

Configuration is loaded from (in order of precedence):
  1. Environment variables (TASKBOARD_ prefix)
  2. YAML config file (if specified)
  3. Default values
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


class ServerSettings(BaseModel):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(default=8080, description="Server port")
    workers: int = Field(default=1, description="Number of worker processes")
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")


class StoreSettings(BaseModel):
    """Record store (source of truth) configuration."""

    backend: Literal["memory", "sqlalchemy"] = Field(default="memory", description="Record store backend")
    url: str = Field(
        default="sqlite+aiosqlite:///./taskboard.db",
        description="SQLAlchemy async database URL (sqlalchemy backend only)",
    )
    echo: bool = Field(default=False, description="Log every SQL statement")


class IndexSettings(BaseModel):
    """Search index configuration.

    One physical index is created per entity type, named
    ``<index_prefix>-<entity>`` (e.g. ``taskboard-task``).
    """

    backend: Literal["memory", "meilisearch", "opensearch"] = Field(
        default="memory", description="Search index backend"
    )
    hosts: list[str] = Field(default_factory=list, description="Backend host URLs")
    index_prefix: str = Field(default="taskboard", description="Prefix for per-entity index names")
    username: str | None = Field(default=None, description="Authentication username")
    password: str | None = Field(default=None, description="Authentication password")
    api_key: str | None = Field(default=None, description="API key authentication")
    timeout: float = Field(default=10.0, gt=0, description="Backend request timeout in seconds")
    extra: dict[str, Any] = Field(default_factory=dict, description="Backend-specific options")

    @field_validator("hosts", mode="before")
    @classmethod
    def _parse_hosts(cls, v: Any) -> list[str]:
        """Parse hosts from JSON string (env var) or list."""
        if isinstance(v, str):
            import json

            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [str(h) for h in parsed]
            except (json.JSONDecodeError, TypeError):
                pass
            # Single host as plain string
            return [v] if v else []
        return list(v)


class SyncSettings(BaseModel):
    """Policies of the store/index synchronizer."""

    update_without_id: Literal["create", "reject"] = Field(
        default="create",
        description="What an update without an id does: fall back to create, or reject it",
    )
    stage_delete_policy: Literal["keep", "nullify"] = Field(
        default="keep",
        description="What happens to tasks when their stage is deleted: keep the dangling id, or clear it",
    )
    reindex_batch_size: int = Field(default=200, ge=1, description="Records read per page during reindex")


class PaginationSettings(BaseModel):
    """Paging limits shared by list and search."""

    default_page_size: int = Field(default=20, ge=1, description="Page size when none is requested")
    max_page_size: int = Field(default=2000, ge=1, description="Requested sizes above this are clamped")


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log format: json, console")


class Settings(BaseSettings):
    """Root application settings.

    Configuration is loaded from environment variables with the TASKBOARD_ prefix.
    Nested settings use double underscores: TASKBOARD_SERVER__PORT=9090

    Example:
        TASKBOARD_STORE__BACKEND=sqlalchemy
        TASKBOARD_INDEX__BACKEND=opensearch
        TASKBOARD_INDEX__HOSTS='["https://localhost:9200"]'
        TASKBOARD_SYNC__UPDATE_WITHOUT_ID=reject
    """

    model_config = {
        "env_prefix": "TASKBOARD_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    # Application metadata
    app_name: str = Field(default="Taskboard", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    # Component settings
    server: ServerSettings = Field(default_factory=ServerSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    index: IndexSettings = Field(default_factory=IndexSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    pagination: PaginationSettings = Field(default_factory=PaginationSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML configuration file.

        Sections missing from the file fall back to environment variables
        and then to defaults.

        Args:
            path: Path to the YAML config file.

        Returns:
            Populated Settings instance.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)
