from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf

load_dotenv()

_HERE = Path(__file__).resolve()
_CANDIDATE_CONFIG_PATHS = [parent / "config/config.yaml" for parent in _HERE.parents[:4]]

DEFAULTS: Dict[str, Any] = {
    "uploads_dir": "uploads",
    "max_upload_bytes": 50 * 1024 * 1024,
    "log_level": "INFO",
    "cors_origins": ["*"],
    "host": "0.0.0.0",
    "port": 8000,
}

# Environment variable -> config key
ENV_OVERRIDES = {
    "UPLOADS_DIR": "uploads_dir",
    "MAX_UPLOAD_BYTES": "max_upload_bytes",
    "LOG_LEVEL": "log_level",
    "HOST": "host",
    "PORT": "port",
}

INTEGER_KEYS = {"max_upload_bytes", "port"}


def find_config_file() -> Optional[Path]:
    explicit = os.environ.get("PDF_EXTRACT_CONFIG")
    if explicit:
        path = Path(explicit)
        if not path.exists():
            raise FileNotFoundError(f"Config file named by PDF_EXTRACT_CONFIG not found at {path}")
        return path
    return next((path for path in _CANDIDATE_CONFIG_PATHS if path.exists()), None)


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is None or value == "":
            continue
        if key in INTEGER_KEYS:
            try:
                overrides[key] = int(value)
            except ValueError as exc:
                raise ValueError(f"{env_name} must be an integer, got {value!r}") from exc
        else:
            overrides[key] = value
    return overrides


def build_settings(config_file: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None) -> DictConfig:
    """
    Merge built-in defaults, an optional YAML file and environment overrides.

    The base is in struct mode, so a YAML file with unknown keys fails fast
    instead of being silently ignored.
    """
    base = OmegaConf.create(DEFAULTS)
    OmegaConf.set_struct(base, True)

    layers = [base]
    if config_file is not None:
        layers.append(OmegaConf.load(config_file))
    layers.append(OmegaConf.create(_env_overrides()))
    if overrides:
        layers.append(OmegaConf.create(overrides))

    merged = DictConfig(OmegaConf.merge(*layers))
    if merged.max_upload_bytes <= 0:
        raise ValueError("max_upload_bytes must be positive")
    return merged


@lru_cache(maxsize=1)
def get_settings() -> DictConfig:
    return build_settings(find_config_file())


def uploads_root(settings: DictConfig) -> Path:
    return Path(settings.uploads_dir).expanduser()
