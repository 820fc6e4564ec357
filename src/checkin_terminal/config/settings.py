from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parents[3]
ENV_PATH = BASE_DIR / ".env"
load_dotenv(ENV_PATH)

DOCUMENTS_PATH = Path(os.path.expanduser("~")) / "Documents"
DEFAULT_APP_NAME = "Event Check-in Terminal"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _data_dir(app_name: str) -> Path:
    return Path(os.getenv("CHECKIN_DATA_DIR", str(DOCUMENTS_PATH / app_name))).expanduser()


@dataclass(frozen=True)
class Settings:
    app_name: str
    database_path: Path
    roster_api_base_url: str
    roster_path: str
    mark_attended_path: str
    mark_attended_method: str
    request_timeout_seconds: float
    scan_cooldown_seconds: float
    sync_interval_seconds: float
    sync_pacing_seconds: float
    connectivity_probe_seconds: float
    qr_camera_index: int
    log_level: str
    log_file: Path | None

    @classmethod
    def from_env(cls) -> "Settings":
        app_name = os.getenv("APP_NAME", DEFAULT_APP_NAME)
        return cls(
            app_name=app_name,
            database_path=Path(
                os.getenv("DATABASE_PATH", str(_data_dir(app_name) / "checkin.db"))
            ).expanduser(),
            roster_api_base_url=os.getenv("ROSTER_API_BASE_URL", "http://localhost:3000/dev").rstrip("/"),
            roster_path=os.getenv("ROSTER_PATH", "/admin/participants"),
            mark_attended_path=os.getenv("MARK_ATTENDED_PATH", "/admin/participant/mark-attended"),
            mark_attended_method=os.getenv("MARK_ATTENDED_METHOD", "PUT").upper(),
            request_timeout_seconds=_env_float("REQUEST_TIMEOUT_SECONDS", 10.0),
            scan_cooldown_seconds=_env_float("SCAN_COOLDOWN_SECONDS", 3.0),
            sync_interval_seconds=_env_float("SYNC_INTERVAL_SECONDS", 30.0),
            sync_pacing_seconds=_env_float("SYNC_PACING_SECONDS", 0.1),
            connectivity_probe_seconds=_env_float("CONNECTIVITY_PROBE_SECONDS", 15.0),
            qr_camera_index=int(os.getenv("QR_CAMERA_INDEX", "0")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=Path(log_file).expanduser() if (log_file := os.getenv("LOG_FILE")) else None,
        )


settings = Settings.from_env()


def refresh_settings() -> Settings:
    """Re-read the environment (and ``.env``) into the module-level settings."""

    global settings  # noqa: PLW0603 - module-level singleton

    load_dotenv(ENV_PATH, override=True)
    settings = Settings.from_env()
    return settings
