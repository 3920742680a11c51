from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

APP_NAME = "stu"
CONFIG_FILE_NAME = "config.json"
ERROR_LOG_FILE_NAME = "error.log"
DEBUG_LOG_FILE_NAME = "debug.log"


def config_base_dir() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        base = Path(config_home).expanduser()
    else:
        base = Path.home() / ".config"
    return base / APP_NAME


def default_download_dir() -> Path:
    return Path.home() / f".{APP_NAME}" / "download"


@dataclass(frozen=True)
class Config:
    download_dir: Path
    base_dir: Path
    default_region: Optional[str] = None

    @classmethod
    def load(cls, base_dir: Optional[Path] = None) -> "Config":
        base = base_dir or config_base_dir()
        payload = _read_config(base / CONFIG_FILE_NAME)
        download_dir = payload.get("download_dir")
        if isinstance(download_dir, str) and download_dir.strip():
            download_path = Path(download_dir.strip()).expanduser()
        else:
            download_path = default_download_dir()
        region = payload.get("default_region")
        if not isinstance(region, str) or not region.strip():
            region = None
        else:
            region = region.strip()
        return cls(download_dir=download_path, base_dir=base, default_region=region)

    def download_file_path(self, name: str) -> Path:
        return self.download_dir / name

    def error_log_path(self) -> Path:
        return self.base_dir / ERROR_LOG_FILE_NAME

    def debug_log_path(self) -> Path:
        return self.base_dir / DEBUG_LOG_FILE_NAME


def _read_config(path: Path) -> dict[str, object]:
    try:
        payload = json.loads(path.read_text())
    except FileNotFoundError:
        return {}
    except Exception as exc:
        logger.warning("ignoring unreadable config %s: %s", path, exc)
        return {}
    if not isinstance(payload, dict):
        return {}
    return payload
