"""
Configuration management with schema validation.
Single source of truth for InstaClone configuration.

Settings are read once from YAML (config/settings.yaml, or the path in
INSTACLONE_SETTINGS), with ${VAR} / ${VAR:default} environment substitution,
and are immutable afterwards.
"""

import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ConfigError
from .logger import get_logger

logger = get_logger(__name__)

# Load environment variables
load_dotenv()

DEFAULT_SETTINGS_FILE = Path("config") / "settings.yaml"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class AppSettings(_Frozen):
    name: str = "InstaClone"
    version: str = "1.0.0"
    environment: str = "development"


class PostVisibilitySettings(_Frozen):
    """When new posts become publicly visible."""
    release_hour: int = Field(default=9, ge=0, le=23)
    release_minute: int = Field(default=0, ge=0, le=59)
    use_utc: bool = True


class UploadLimitSettings(_Frozen):
    daily_limit: int = Field(default=3, gt=0)
    max_total_posts: int = Field(default=50, gt=0)
    # Day boundary used for the daily count; independent of post_visibility.use_utc
    quota_time_zone: Literal["local", "utc"] = "local"


class RecentActivitySettings(_Frozen):
    past_releases_displayed: int = Field(default=3, gt=0)
    feed_label: str = "Last {past_releases_displayed} days"


class ViewingHistorySettings(_Frozen):
    max_age_days: int = Field(default=7, gt=0)
    max_entries: int = Field(default=50, gt=0)


class StorageSettings(_Frozen):
    data_dir: str = "data"


class MediaTransformation(_Frozen):
    max_width: int = Field(default=1080, gt=0)
    max_height: int = Field(default=1350, gt=0)
    crop: str = "limit"
    quality: str = "auto"
    format: Optional[str] = "jpg"


class MediaSettings(_Frozen):
    provider: Literal["cloudinary", "local"] = "local"
    folder: str = "instaclone"
    uploads_dir: str = "uploads"
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    transformation: MediaTransformation = Field(default_factory=MediaTransformation)


class AuthSettings(_Frozen):
    session_days: int = Field(default=7, gt=0)
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_redirect_uri: Optional[str] = None
    state_secret: Optional[str] = None


class LoggingSettings(_Frozen):
    level: str = "INFO"
    format: str = "json"
    file_path: Optional[str] = None
    max_bytes: int = 10485760
    backup_count: int = 5


class Settings(_Frozen):
    app: AppSettings = Field(default_factory=AppSettings)
    post_visibility: PostVisibilitySettings = Field(default_factory=PostVisibilitySettings)
    upload_limits: UploadLimitSettings = Field(default_factory=UploadLimitSettings)
    recent_activity: RecentActivitySettings = Field(default_factory=RecentActivitySettings)
    viewing_history: ViewingHistorySettings = Field(default_factory=ViewingHistorySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    media: MediaSettings = Field(default_factory=MediaSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _substitute_env_vars(value: Any) -> Any:
    """Recursively substitute environment variables"""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            var_expr = value[2:-1]
            if ":" in var_expr:
                var_name, default = var_expr.split(":", 1)
                resolved = os.getenv(var_name.strip(), default.strip())
            else:
                resolved = os.getenv(var_expr)
            # Empty values fall back to the model default
            return resolved if resolved not in (None, "") else None
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    return value


class ConfigManager:
    """Loads settings.yaml once and hands out the validated Settings."""

    def __init__(self, settings_path: Optional[Path] = None):
        env_path = os.getenv("INSTACLONE_SETTINGS")
        self.settings_path = Path(settings_path or env_path or DEFAULT_SETTINGS_FILE)
        self._settings: Optional[Settings] = None

    def load_settings(self) -> Settings:
        """Load and validate settings. A missing file yields the defaults."""
        raw_data: Dict[str, Any] = {}
        if self.settings_path.exists():
            try:
                with open(self.settings_path, "r", encoding="utf-8") as f:
                    raw_data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Failed to read settings from {self.settings_path}: {e}")
            if not isinstance(raw_data, dict):
                raise ConfigError(f"Settings file {self.settings_path} must contain a mapping")
        else:
            logger.info("Settings file not found, using defaults", path=str(self.settings_path))

        processed_data = _drop_none(_substitute_env_vars(raw_data))
        try:
            self._settings = Settings(**processed_data)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings in {self.settings_path}: {e}")

        logger.info(
            "Settings loaded",
            path=str(self.settings_path),
            release_hour=self._settings.post_visibility.release_hour,
            release_minute=self._settings.post_visibility.release_minute,
            daily_limit=self._settings.upload_limits.daily_limit,
            max_total_posts=self._settings.upload_limits.max_total_posts,
        )
        return self._settings

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            return self.load_settings()
        return self._settings


# Global instance
config_manager = ConfigManager()


def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    return config_manager.settings


def data_dir() -> Path:
    """Root directory of the document store; INSTACLONE_DATA_DIR wins over settings."""
    return Path(os.getenv("INSTACLONE_DATA_DIR") or get_settings().storage.data_dir)
