"""Environment-driven settings for the video generation server."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from .errors import MissingCredentialError

load_dotenv()

REPLICATE_API_BASE = "https://api.replicate.com/v1"
OPENROUTER_API_BASE = "https://openrouter.ai/api/v1"
DEFAULT_VISION_MODEL = "google/gemini-2.5-flash"

DEFAULT_POLL_INTERVAL_SECONDS = 10.0
DEFAULT_POLL_TIMEOUT_SECONDS = 15 * 60.0
DEFAULT_SAVE_DIR = "videos"


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, falling back to ``default`` when unset."""
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


class PollingConfig(BaseModel):
    """Cadence and wall-clock budget of the prediction polling loop."""
    model_config = ConfigDict(frozen=True)

    interval_seconds: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, ge=0)
    timeout_seconds: float = Field(default=DEFAULT_POLL_TIMEOUT_SECONDS, gt=0)


class StorageSettings(BaseModel):
    """Supabase Storage bucket used to publish local images."""
    model_config = ConfigDict(frozen=True)

    url: Optional[str] = None
    service_key: Optional[str] = None
    bucket: str = "images"
    folder: str = "video-generation"

    @classmethod
    def from_env(cls) -> "StorageSettings":
        """Read SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY and SUPABASE_BUCKET."""
        return cls(
            url=(os.environ.get("SUPABASE_URL") or "").rstrip("/") or None,
            service_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or None,
            bucket=os.environ.get("SUPABASE_BUCKET", "images"),
        )

    def require_credentials(self) -> tuple[str, str]:
        """Return ``(url, key)`` or raise MissingCredentialError naming the missing variable."""
        if not self.url:
            raise MissingCredentialError("SUPABASE_URL environment variable is required to upload local images")
        if not self.service_key:
            raise MissingCredentialError(
                "SUPABASE_SERVICE_ROLE_KEY environment variable is required to upload local images"
            )
        return self.url, self.service_key


class VisionSettings(BaseModel):
    """OpenRouter chat endpoint used to review video frames."""
    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    api_base: str = OPENROUTER_API_BASE
    model: str = DEFAULT_VISION_MODEL
    request_timeout_seconds: float = 180.0

    @classmethod
    def from_env(cls) -> "VisionSettings":
        """Read OPENROUTER_API_KEY, OPENROUTER_API_BASE and VISION_MODEL."""
        return cls(
            api_key=os.environ.get("OPENROUTER_API_KEY") or None,
            api_base=os.environ.get("OPENROUTER_API_BASE", OPENROUTER_API_BASE).rstrip("/"),
            model=os.environ.get("VISION_MODEL", DEFAULT_VISION_MODEL),
        )

    def require_key(self) -> str:
        """Return the API key or fail before any frame is extracted."""
        if not self.api_key:
            raise MissingCredentialError("OPENROUTER_API_KEY environment variable is required")
        return self.api_key


class GenerationSettings(BaseModel):
    """Everything the generation pipeline reads from the environment."""
    model_config = ConfigDict(frozen=True)

    api_token: Optional[str] = None
    api_base: str = REPLICATE_API_BASE
    save_dir: str = DEFAULT_SAVE_DIR
    polling: PollingConfig = Field(default_factory=PollingConfig)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    request_timeout_seconds: float = 60.0
    download_timeout_seconds: float = 300.0

    @classmethod
    def from_env(cls) -> "GenerationSettings":
        """Read the Replicate token, API base, save directory and polling settings."""
        return cls(
            api_token=os.environ.get("REPLICATE_API_TOKEN") or None,
            api_base=os.environ.get("REPLICATE_API_BASE", REPLICATE_API_BASE).rstrip("/"),
            save_dir=os.environ.get("VIDEO_SAVE_DIR", DEFAULT_SAVE_DIR),
            polling=PollingConfig(
                interval_seconds=_env_float("VIDEO_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS),
                timeout_seconds=_env_float("VIDEO_POLL_TIMEOUT_SECONDS", DEFAULT_POLL_TIMEOUT_SECONDS),
            ),
            storage=StorageSettings.from_env(),
        )

    def require_token(self) -> str:
        """Return the API token or fail before any network call is made."""
        if not self.api_token:
            raise MissingCredentialError("REPLICATE_API_TOKEN environment variable is required")
        return self.api_token

    def resolve_save_dir(self, save_path: Optional[str] = None) -> Path:
        """Resolve a save directory against the current working directory."""
        return Path.cwd() / (save_path or self.save_dir)
