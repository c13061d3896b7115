"""Configuration management using Pydantic Settings."""

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from attachkeeper.utils.naming import DEFAULT_DATE_FORMAT, DEFAULT_NAME_FORMAT

logger = logging.getLogger(__name__)


class VaultConfig(BaseSettings):
    """Location of the document store."""

    root: Path | None = None

    @field_validator("root", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path | None) -> Path | None:
        """Expand user home directory in paths."""
        if v is None:
            return None
        return Path(v).expanduser().resolve()


class AttachmentsConfig(BaseSettings):
    """Attachment folder and file naming rules.

    Attributes:
        folder_suffix: Appended to the sanitized note name to form the
                       attachment folder, e.g. ``Design`` -> ``Design_Attachments``
        name_format: Template for new attachment names, supports
                     ``{notename}`` and ``{date}``
        date_format: moment.js style pattern used for ``{date}``
        prompt_rename_image: Ask for a name for every image moved while fixing paths
        auto_rename_folder: Rename the attachment folder when its note is renamed
        validate_notes_without_images: Report a missing folder even for notes
                                       that reference no image
    """

    folder_suffix: str = "_Attachments"
    name_format: str = DEFAULT_NAME_FORMAT
    date_format: str = DEFAULT_DATE_FORMAT
    prompt_rename_image: bool = True
    auto_rename_folder: bool = True
    validate_notes_without_images: bool = True

    @field_validator("folder_suffix", mode="before")
    @classmethod
    def validate_suffix(cls, v: str) -> str:
        """Reject suffixes that would make the folder name equal the note name."""
        if not v or not str(v).strip():
            raise ValueError("Attachment folder suffix must not be empty")
        return v


class LinksConfig(BaseSettings):
    """How generated links are written into documents."""

    link_format: str = "markdown"
    path_style: str = "shortest"

    @field_validator("link_format", mode="before")
    @classmethod
    def validate_link_format(cls, v: str) -> str:
        """Validate link format."""
        valid = {"markdown", "wiki"}
        v = v.lower()
        if v not in valid:
            raise ValueError(f"Link format must be one of: {', '.join(sorted(valid))}")
        return v

    @field_validator("path_style", mode="before")
    @classmethod
    def validate_path_style(cls, v: str) -> str:
        """Validate link path style."""
        valid = {"shortest", "relative", "absolute"}
        v = v.lower()
        if v not in valid:
            raise ValueError(f"Path style must be one of: {', '.join(sorted(valid))}")
        return v


class DownloadsConfig(BaseSettings):
    """Remote image download settings."""

    timeout: float = 30.0
    connect_timeout: float = 10.0
    follow_redirects: bool = True
    user_agent: str = "attachkeeper"
    # Seconds to wait after deleting a file that occupied a download target.
    settle_delay: float = 0.1

    @field_validator("timeout", "connect_timeout", "settle_delay")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Durations must not be negative")
        return v


class GeneralConfig(BaseSettings):
    """General application configuration."""

    log_level: str = "INFO"
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".attachkeeper"
    )
    log_file_name: str = "attachkeeper.log"
    log_file_max_bytes: int = 5 * 1024 * 1024
    log_file_backup_count: int = 3
    # Per-category level overrides, e.g. {"download": "DEBUG"}
    log_overrides: dict[str, str] = Field(default_factory=dict)
    # Runtime metadata - not serialized to config file
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
        env_prefix="ATTACHKEEPER_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)
    attachments: AttachmentsConfig = Field(default_factory=AttachmentsConfig)
    links: LinksConfig = Field(default_factory=LinksConfig)
    downloads: DownloadsConfig = Field(default_factory=DownloadsConfig)

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
        import tomli_w

        config_path.parent.mkdir(parents=True, exist_ok=True)

        # Convert to dict, handling Path objects and excluding None values
        config_dict = self.model_dump(mode="json", exclude_none=True)

        with open(config_path, "wb") as f:
            tomli_w.dump(config_dict, f)

        logger.info(f"Configuration saved to {config_path}")

    def ensure_data_dir(self) -> None:
        """Ensure data directory exists."""
        self.general.data_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Data directory: {self.general.data_dir}")

    @property
    def default_config_path(self) -> Path:
        """Get default configuration file path."""
        return self.general.data_dir / "config.toml"

    @property
    def log_dir(self) -> Path:
        return self.general.data_dir / "logs"


# Global configuration instance
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


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
