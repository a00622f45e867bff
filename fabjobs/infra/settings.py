"""
Environment configuration.

Values come from the process environment (a .env file is loaded by the CLI
through python-dotenv). Malformed values log a warning and fall back to the
default.

Environment Variables:
- FABJOBS_DB_PATH: SQLite file for job and device records (default: data/fabjobs.db)
- FABJOBS_LOG_LEVEL: Logging level (default: INFO)
- FABJOBS_LOG_DIR: Directory for daily log files (default: logs)
- JOB_TICK_INTERVAL_SECONDS: Progress re-broadcast interval (default: 10)
- BROADCAST_WEBHOOK_URLS: Comma separated webhook subscribers (default: none)
- BROADCAST_TIMEOUT_SECONDS: Webhook request timeout (default: 5)
- STATIC_DEVICES: Comma separated port=name pairs for static discovery
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


def _get_env_float(key: str, default: float) -> float:
    """Get float value from environment variable."""
    val = os.getenv(key)
    if val is not None and val.strip():
        try:
            return float(val)
        except ValueError:
            logger.warning(f"[Settings] Invalid number for {key}: {val}, using default: {default}")
    return default


def _get_env_list(key: str) -> list[str]:
    """Get comma separated list from environment variable."""
    return [item.strip() for item in os.getenv(key, "").split(",") if item.strip()]


def _parse_static_devices(items: list[str]) -> list[tuple[str, str]]:
    devices = []
    for item in items:
        port, sep, name = item.partition("=")
        port = port.strip()
        if not port:
            logger.warning(f"[Settings] Ignoring static device without port: {item}")
            continue
        devices.append((port, name.strip() if sep and name.strip() else port))
    return devices


def get_project_root() -> Path:
    """Project root, two levels above this file."""
    return Path(__file__).parent.parent.parent.resolve()


@dataclass(frozen=True)
class Settings:
    db_path: Path
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    tick_interval: float = 10.0
    webhook_urls: list[str] = field(default_factory=list)
    broadcast_timeout: float = 5.0
    static_devices: list[tuple[str, str]] = field(default_factory=list)


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    db_path = os.getenv("FABJOBS_DB_PATH") or str(get_project_root() / "data" / "fabjobs.db")
    tick_interval = _get_env_float("JOB_TICK_INTERVAL_SECONDS", 10.0)
    if tick_interval < 0:
        logger.warning(f"[Settings] Negative JOB_TICK_INTERVAL_SECONDS {tick_interval}, using 10")
        tick_interval = 10.0

    return Settings(
        db_path=Path(db_path),
        log_level=os.getenv("FABJOBS_LOG_LEVEL", "INFO").upper(),
        log_dir=Path(os.getenv("FABJOBS_LOG_DIR", "logs")),
        tick_interval=tick_interval,
        webhook_urls=_get_env_list("BROADCAST_WEBHOOK_URLS"),
        broadcast_timeout=_get_env_float("BROADCAST_TIMEOUT_SECONDS", 5.0),
        static_devices=_parse_static_devices(_get_env_list("STATIC_DEVICES")),
    )
