from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLDS = """
{
    "alert": {
        "load": {
            "low": 2,
            "design": 60.0,
            "engineered": 80.0
        }
    }
}
"""


def _env_int(name: str, default: int) -> int:
    """Parse an int env var with a default."""
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return int(default)


def _env_bool(name: str, default: bool = False) -> bool:
    """Parse a bool env var (true/false/1/0/yes/no/on/off)."""
    raw = os.getenv(name)
    if raw is None:
        return bool(default)
    val = raw.strip().lower()
    if val in ("1", "true", "yes", "y", "on"):
        return True
    if val in ("0", "false", "no", "n", "off"):
        return False
    return bool(default)


def _clamp_int(v: int, lo: int, hi: int) -> int:
    """Clamp integer to [lo, hi]."""
    return max(lo, min(hi, int(v)))


@dataclass(frozen=True)
class PluginSettings:
    """Runtime settings for the plugin host, loaded from env and an optional thresholds file."""

    tick_interval_sec: int
    # 0 means run until shutdown.
    tick_iterations: int
    tick_loop_enabled: bool

    metrics_host: str
    metrics_port: int
    metrics_path: str

    # Raw threshold document handed to the plugin's init().
    config_text: str

    # Diagnostics: how config_text was resolved
    config_source: str
    config_path: Optional[str]


def _read_thresholds_file(path_str: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Attempt to read the threshold document from PLUGIN_CONFIG_FILE.

    Returns:
      (text, path_str) where path_str is included only when the file existed/read was attempted.
    """
    candidate = Path(path_str).expanduser()
    if not candidate.exists():
        logger.warning("Thresholds file %s does not exist; falling back", str(candidate))
        return None, None

    try:
        text = candidate.read_text(encoding="utf-8")
        return (text if text.strip() else None), str(candidate)
    except Exception:
        logger.exception("Failed reading thresholds file at %s", str(candidate))
        return None, str(candidate)


def _normalize_path(raw: str) -> str:
    path = "/" + raw.strip().strip("/")
    return path if path != "/" else "/metrics"


# PUBLIC_INTERFACE
def load_settings() -> PluginSettings:
    """Load PluginSettings from env vars; the thresholds file (if set) wins over inline PLUGIN_CONFIG."""
    file_text: Optional[str] = None
    file_path: Optional[str] = None
    config_file = os.getenv("PLUGIN_CONFIG_FILE")
    if config_file:
        file_text, file_path = _read_thresholds_file(config_file)

    env_text = os.getenv("PLUGIN_CONFIG")

    if file_text:
        config_source, config_text = "PLUGIN_CONFIG_FILE", file_text
    elif env_text and env_text.strip():
        config_source, config_text = "PLUGIN_CONFIG", env_text
    else:
        config_source, config_text = "default", DEFAULT_THRESHOLDS

    tick_interval = max(1, _env_int("PLUGIN_TICK_INTERVAL_SEC", 10))
    tick_iterations = max(0, _env_int("PLUGIN_TICK_ITERATIONS", 12))
    tick_loop_enabled = _env_bool("PLUGIN_TICK_LOOP_ENABLED", True)

    metrics_port = _clamp_int(_env_int("PLUGIN_METRICS_PORT", 8999), 1, 65535)
    metrics_host = (os.getenv("PLUGIN_METRICS_HOST") or "0.0.0.0").strip()
    metrics_path = _normalize_path(os.getenv("PLUGIN_METRICS_PATH") or "/metrics")

    logger.info(
        "Resolved plugin settings config_source=%s path=%s tick_interval=%ss iterations=%s metrics=%s:%s%s",
        config_source,
        file_path,
        tick_interval,
        tick_iterations,
        metrics_host,
        metrics_port,
        metrics_path,
    )

    return PluginSettings(
        tick_interval_sec=tick_interval,
        tick_iterations=tick_iterations,
        tick_loop_enabled=tick_loop_enabled,
        metrics_host=metrics_host,
        metrics_port=metrics_port,
        metrics_path=metrics_path,
        config_text=config_text,
        config_source=config_source,
        config_path=file_path,
    )
