"""ktn-bridge settings.

Loaded from ``config/ktn_bridge.yaml`` (or the file named by
``KTN_BRIDGE_CONFIG``), then overridden by environment variables. A
``.env`` file in the working directory is honored.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from .core.constants import (
    DEFAULT_API_BASE_PATH,
    DEFAULT_DEBUG_CAPACITY,
    DEFAULT_TRACE_CAPACITY,
    PERFORMANCE_WINDOW_SECONDS,
    STATISTICS_WINDOW_SECONDS,
)
from .core.models import TargetMode

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "KTN_BRIDGE_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "ktn_bridge.yaml"

# Environment variable → (section, key)
_ENV_OVERRIDES = {
    "KTN_BRIDGE_TARGET_MODE": ("transform", "target_mode"),
    "KTN_BRIDGE_API_BASE_PATH": ("transform", "api_base_path"),
    "KTN_BRIDGE_LOG_LEVEL": ("logging", "level"),
}


class TransformSettings(BaseModel):
    target_mode: TargetMode = Field(TargetMode.PRODUCTION, description="Default build target")
    api_base_path: str = Field(DEFAULT_API_BASE_PATH, description="fetch URLs under this path need a mapping")
    source_map: bool = Field(False, description="Emit source maps by default")

    @field_validator("target_mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any) -> TargetMode:
        return TargetMode.parse(value)

    @field_validator("api_base_path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        value = value.strip() or "/"
        return value if value.startswith("/") else "/" + value


class DiagnosticsSettings(BaseModel):
    debug_capacity: int = Field(DEFAULT_DEBUG_CAPACITY, ge=1)
    trace_capacity: int = Field(DEFAULT_TRACE_CAPACITY, ge=1)
    enable_traces: bool = True
    enable_error_details: bool = True
    performance_window_seconds: int = Field(PERFORMANCE_WINDOW_SECONDS, ge=1)
    statistics_window_seconds: int = Field(STATISTICS_WINDOW_SECONDS, ge=1)


class LoggingSettings(BaseModel):
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()


class BuildSettings(BaseModel):
    include_extensions: list = Field(
        default_factory=lambda: [".js", ".jsx", ".mjs", ".cjs", ".ts", ".mts", ".cts", ".tsx"]
    )
    exclude_dirs: list = Field(default_factory=lambda: ["node_modules", "dist", ".git"])
    cache_size: int = Field(256, ge=0)


class BridgeSettings(BaseModel):
    transform: TransformSettings = Field(default_factory=TransformSettings)
    diagnostics: DiagnosticsSettings = Field(default_factory=DiagnosticsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)


def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    for env_var, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            data.setdefault(section, {})[key] = value
            logger.debug("Setting %s.%s from %s", section, key, env_var)
    return data


def load_settings(config_path: Optional[Union[str, Path]] = None) -> BridgeSettings:
    """Build settings from YAML plus environment overrides.

    Args:
        config_path: Explicit YAML path. Defaults to ``$KTN_BRIDGE_CONFIG``
            or the bundled ``config/ktn_bridge.yaml``. A missing default
            file is not an error; a missing explicit one is.
    """
    load_dotenv()

    explicit = config_path or os.getenv(CONFIG_ENV_VAR)
    path = Path(explicit) if explicit else DEFAULT_CONFIG_PATH

    data: Dict[str, Any] = {}
    if path.exists():
        data = _read_yaml(path)
        logger.debug("Loaded settings from %s", path)
    elif explicit:
        raise FileNotFoundError(f"Config file not found: {path}")
    else:
        logger.debug("No config file at %s, using defaults", path)

    return BridgeSettings.model_validate(_apply_env_overrides(data))


@lru_cache(maxsize=1)
def get_settings() -> BridgeSettings:
    return load_settings()
