"""Configuration management using Pydantic Settings."""

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class StorageConfig(BaseSettings):
    """Configuration for the on-disk note tree."""

    # Root of the browsable tree. None means "use the adapter's default root".
    root: str | None = None
    # "auto" probes the host once at startup; "local", "webdav" and "null" force a backend.
    backend: str = "auto"
    metadata_file_name: str = "data.json"
    text_file_name: str = "content.txt"

    webdav_url: str | None = None
    webdav_username: str | None = None
    webdav_password: str | None = None
    webdav_root: str = "/MemoVault"
    webdav_ssl_verify: bool = True

    @field_validator("backend", mode="before")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate storage backend."""
        valid_backends = {"auto", "local", "webdav", "null"}
        v = v.lower()
        if v not in valid_backends:
            raise ValueError(f"Storage backend must be one of: {', '.join(sorted(valid_backends))}")
        return v

    @field_validator("webdav_url", mode="before")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Validate WebDAV URL format."""
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("WebDAV URL must start with http:// or https://")
        return v

    @field_validator("metadata_file_name", "text_file_name")
    @classmethod
    def validate_file_name(cls, v: str) -> str:
        if not v or "/" in v or "\\" in v or v.startswith("."):
            raise ValueError(f"Invalid note file name: {v!r}")
        return v


class GeneralConfig(BaseSettings):
    """General application configuration."""

    log_level: str = "INFO"
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".memovault"
    )
    log_file_name: str = "memovault.log"
    log_file_max_bytes: int = 2 * 1024 * 1024
    log_file_backup_count: int = 3
    # Per-category level overrides, e.g. {"sync": "DEBUG"}
    log_overrides: dict[str, str] = Field(default_factory=dict)
    # Runtime metadata - not serialized to config file (stored in settings DB instead)
    config_file: Path | None = Field(default=None, exclude=True)

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_data_dir(cls, v: str | Path) -> Path:
        """Expand user home directory in data directory path."""
        return Path(v).expanduser().resolve()


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MEMOVAULT_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AppConfig":
        """Load configuration from a TOML file."""
        if not config_path.exists():
            logger.warning(f"Config file not found: {config_path}, using defaults")
            return cls()

        import tomllib

        with open(config_path, "rb") as f:
            config_dict = tomllib.load(f)

        return cls(**config_dict)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to a TOML file."""
        try:
            import tomli_w
        except ImportError as e:
            logger.error("tomli_w not installed, cannot save config")
            raise ImportError("Install tomli_w to save configuration: pip install tomli-w") from e

        config_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.model_dump(mode="json", exclude_none=True)

        with open(config_path, "wb") as f:
            tomli_w.dump(config_dict, f)

        logger.info(f"Configuration saved to {config_path}")

    def ensure_data_dir(self) -> None:
        """Ensure data directory exists."""
        self.general.data_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Data directory: {self.general.data_dir}")

    @property
    def records_db_path(self) -> Path:
        """Path to the notes/folders record store."""
        return self.general.data_dir / "records.db"

    @property
    def default_config_path(self) -> Path:
        """Get default configuration file path."""
        return self.general.data_dir / "config.toml"


# Global configuration instance
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig()
        _config.ensure_data_dir()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
    _config.ensure_data_dir()


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from file or create default."""
    if config_path is None:
        config = AppConfig()
        config_path = config.default_config_path

    if config_path.exists():
        config = AppConfig.load_from_file(config_path)
    else:
        config = AppConfig()

    config.general.config_file = config_path
    set_config(config)
    return config
