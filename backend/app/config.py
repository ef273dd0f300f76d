"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from app.errors import ConfigError

SETUP_INSTRUCTIONS = (
    "No Gemini API key found. Configure it before generating scripts:\n"
    "  - Deployment: add the environment variable GOOGLE_API_KEY=<your Gemini API key> "
    "and restart the service.\n"
    "  - Local: create backend/.env containing GOOGLE_API_KEY=<your key>.\n"
    "Get a key at https://aistudio.google.com/app/apikey"
)


def _read_int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(value, minimum)


def _read_float(name: str, default: float | None) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _load_dotenv_file(path: Path) -> None:
    """Load KEY=VALUE pairs from a dotenv file without overriding existing env."""
    if not path.is_file():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            os.environ.setdefault(key, value)


def _load_dotenv_files(paths: Iterable[Path]) -> None:
    """Load multiple dotenv files in order."""
    for path in paths:
        _load_dotenv_file(path)


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the API, uploads and the generation client."""

    google_api_key: str
    temp_media_dir: str
    settings_file: str
    large_video_confirm_bytes: int
    max_upload_bytes: int
    generation_timeout_seconds: int
    generation_temperature: float | None
    cleanup_max_age_hours: int

    @classmethod
    def from_env(
        cls,
        *,
        autoload_dotenv: bool = True,
        dotenv_files: tuple[Path, ...] | None = None,
    ) -> "Settings":
        backend_root = Path(__file__).resolve().parent.parent
        if autoload_dotenv:
            default_dotenvs = (backend_root / ".env", backend_root / ".env.local")
            _load_dotenv_files(dotenv_files or default_dotenvs)
        api_key = os.getenv("GOOGLE_API_KEY", "").strip() or os.getenv("API_KEY", "").strip()
        return cls(
            google_api_key=api_key,
            temp_media_dir=os.getenv("TEMP_MEDIA_DIR", str(backend_root / "tmp_media")).strip(),
            settings_file=os.getenv(
                "SETTINGS_FILE",
                str(backend_root / "local_settings.json"),
            ).strip(),
            large_video_confirm_bytes=_read_int(
                "LARGE_VIDEO_CONFIRM_BYTES",
                default=50 * 1024 * 1024,
                minimum=0,
            ),
            max_upload_bytes=_read_int("MAX_UPLOAD_BYTES", default=500 * 1024 * 1024, minimum=1),
            generation_timeout_seconds=_read_int("GENERATION_TIMEOUT_SECONDS", default=600, minimum=1),
            generation_temperature=_read_float("GENERATION_TEMPERATURE", default=None),
            cleanup_max_age_hours=_read_int("CLEANUP_MAX_AGE_HOURS", default=24, minimum=1),
        )

    def missing_llm_fields(self) -> list[str]:
        """Return missing required generation settings."""
        missing: list[str] = []
        if not self.google_api_key:
            missing.append("GOOGLE_API_KEY")
        return missing

    def require_api_key(self) -> str:
        """Return the API key or raise ConfigError with setup instructions."""
        if not self.google_api_key:
            raise ConfigError(SETUP_INSTRUCTIONS)
        return self.google_api_key
