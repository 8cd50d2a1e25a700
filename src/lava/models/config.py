"""Pydantic configuration models for lava."""

import os
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..exceptions import ConfigError

DEFAULT_BLOCKED_DOMAINS = [
    "docs.google.com",
    "sheets.google.com",
    "sites.google.com",
    "drive.google.com",
]

DEFAULT_TAGS = ["clippings"]


class Strategy(str, Enum):
    """How a page is retrieved before extraction."""

    RENDER = "render"
    FETCH = "fetch"

    @classmethod
    def parse(cls, value: Any) -> "Strategy":
        """Parse a strategy name, accepting the legacy parser names."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name in ("render", "browser", "puppeteer", "playwright"):
            return cls.RENDER
        if name in ("fetch", "http", "jsdom", "static"):
            return cls.FETCH
        raise ValueError(f"Unknown strategy: {value!r}. Use 'render' or 'fetch'.")


class ReturnFormat(str, Enum):
    """Shape of the per-link results returned by a batch."""

    MARKDOWN = "markdown"
    STRUCTURED = "structured"

    @classmethod
    def parse(cls, value: Any) -> "ReturnFormat":
        """Parse a return format, accepting 'md' and 'json' shorthands."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name in ("md", "markdown"):
            return cls.MARKDOWN
        if name in ("json", "structured"):
            return cls.STRUCTURED
        raise ValueError(f"Unknown return format: {value!r}. Use 'md' or 'json'.")


class NetworkConfig(BaseModel):
    """Configuration for page retrieval."""

    render_timeout: float = Field(30.0, gt=0, description="Browser navigation timeout in seconds")
    fetch_timeout: float = Field(30.0, gt=0, description="HTTP request timeout in seconds")
    max_retries: int = Field(2, ge=0, description="Retry attempts for transient HTTP failures")
    user_agent: Optional[str] = Field(None, description="Custom User-Agent header")
    headless: bool = Field(True, description="Run the browser without a window")

    model_config = {"extra": "forbid"}


class ServerConfig(BaseModel):
    """Configuration for the HTTP API."""

    host: str = Field("127.0.0.1", description="Interface to bind")
    port: int = Field(3000, ge=1, le=65535, description="Port to listen on")

    model_config = {"extra": "forbid"}


class WatchConfig(BaseModel):
    """Configuration for watch and poll modes."""

    debounce_seconds: float = Field(
        0.5,
        ge=0,
        description="Ignore file changes this soon after lava's own write",
    )
    check_interval: float = Field(0.5, gt=0, description="Seconds between change checks in watch mode")
    poll_interval: float = Field(10.0, gt=0, description="Seconds between scans in poll mode")

    model_config = {"extra": "forbid"}


class LavaConfig(BaseModel):
    """
    Root configuration model for lava.

    Example:
        config = LavaConfig(
            clipping_dir=Path("./vault/Clippings"),
            links_file=Path("./vault/links.md"),
            strategy=Strategy.FETCH,
        )

    YAML format:
        clipping_dir: ./vault/Clippings
        links_file: ./vault/links.md
        strategy: render
        return_format: markdown
        network:
          render_timeout: 30
    """

    clipping_dir: Optional[Path] = Field(None, description="Directory clippings are written to")
    links_file: Optional[Path] = Field(None, description="Links file watched in daemon mode")

    strategy: Strategy = Field(Strategy.RENDER, description="Default page retrieval strategy")
    return_format: ReturnFormat = Field(ReturnFormat.STRUCTURED, description="Default result shape")
    save_to_disk: bool = Field(True, description="Write clippings to clipping_dir")

    blocked_domains: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_DOMAINS),
        description="Hosts (and their subdomains) that are never clipped",
    )
    default_tags: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TAGS),
        description="Frontmatter tags on every article and video clipping",
    )

    network: NetworkConfig = Field(default_factory=NetworkConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field("INFO", description="Logging level")
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}

    @field_validator("strategy", mode="before")
    @classmethod
    def _parse_strategy(cls, value: Any) -> Strategy:
        return Strategy.parse(value)

    @field_validator("return_format", mode="before")
    @classmethod
    def _parse_return_format(cls, value: Any) -> ReturnFormat:
        return ReturnFormat.parse(value)

    @field_validator("blocked_domains")
    @classmethod
    def _normalize_domains(cls, value: list[str]) -> list[str]:
        return [d.strip().lower() for d in value if d and d.strip()]

    @field_validator("default_tags")
    @classmethod
    def _normalize_tags(cls, value: list[str]) -> list[str]:
        return [" ".join(tag.split()) for tag in value if tag and tag.strip()]

    @property
    def clipping_path(self) -> Path:
        """Absolute clipping directory."""
        if self.clipping_dir is None:
            raise ConfigError("CLIPPING_DIR not configured")
        return self.clipping_dir if self.clipping_dir.is_absolute() else Path.cwd() / self.clipping_dir

    @property
    def links_path(self) -> Path:
        """Absolute links file path."""
        if self.links_file is None:
            raise ConfigError("LINKS_FILE not configured")
        return self.links_file if self.links_file.is_absolute() else Path.cwd() / self.links_file

    def require_daemon_settings(self) -> None:
        """Check the settings watch mode cannot run without."""
        if self.clipping_dir is None:
            raise ConfigError("CLIPPING_DIR environment variable not set (required for daemon mode)")
        if self.links_file is None:
            raise ConfigError("LINKS_FILE environment variable not set (required for daemon mode)")

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None, **overrides: Any) -> "LavaConfig":
        """
        Build config from environment variables.

        Recognised variables: CLIPPING_DIR, LINKS_FILE, PARSER,
        RETURN_FORMAT, SAVE_TO_DISK, BLOCKED_DOMAINS, DEFAULT_TAGS, LOG_LEVEL.
        Keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}

        if env.get("CLIPPING_DIR"):
            data["clipping_dir"] = env["CLIPPING_DIR"]
        if env.get("LINKS_FILE"):
            data["links_file"] = env["LINKS_FILE"]
        if env.get("PARSER"):
            data["strategy"] = env["PARSER"]
        if env.get("RETURN_FORMAT"):
            data["return_format"] = env["RETURN_FORMAT"]
        if env.get("SAVE_TO_DISK"):
            data["save_to_disk"] = env["SAVE_TO_DISK"].strip().lower() != "false"
        if env.get("BLOCKED_DOMAINS"):
            data["blocked_domains"] = env["BLOCKED_DOMAINS"].split(",")
        if env.get("DEFAULT_TAGS"):
            data["default_tags"] = env["DEFAULT_TAGS"].split(",")
        if env.get("LOG_LEVEL"):
            data["log_level"] = env["LOG_LEVEL"].upper()

        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(data)

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "LavaConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "LavaConfig":
        """Load config from YAML file."""
        return cls.from_yaml(path.read_text(encoding="utf-8"))
