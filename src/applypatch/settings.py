from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

import json5  # type: ignore
import yaml
from pydantic import BaseModel, Field

from applypatch.patch.models import ParseMode


# Looked up in the working directory when no --config is given.
DEFAULT_CONFIG_NAMES = (".applypatch.yaml", ".applypatch.yml", ".applypatch.json5")


class LogLevel(str, Enum):
    debug = "debug"
    info = "info"
    warning = "warning"
    error = "error"
    critical = "critical"


class LoggingSettings(BaseModel):
    level: LogLevel = LogLevel.warning
    # Log to this file instead of stderr.
    file: Optional[Path] = None


class Settings(BaseModel):
    parse_mode: ParseMode = ParseMode.lenient
    # Context lines around each hunk of rendered diffs.
    diff_context: int = Field(default=1, ge=0)
    # Reject absolute paths and ../ traversal in patch file references.
    check_paths: bool = True
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _load_raw_file(path: Path) -> Any:
    ext = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    data: Any = None
    try:
        if ext in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        elif ext in {".json5", ".jsonc", ".json"}:
            data = json5.loads(text)
        else:
            raise ValueError(f"Unsupported config file extension: {ext}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid config file {path}: {e}") from e
    if data is None:
        return {}
    return data


def find_config(base: Path) -> Optional[Path]:
    for name in DEFAULT_CONFIG_NAMES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    if path is None:
        return Settings()
    data = _load_raw_file(Path(path))
    if not isinstance(data, dict):
        raise ValueError("Root configuration must be a mapping/object")
    return Settings.model_validate(data)
