"""
StripMaker — Configuration.

Settings come from three layers, later ones winning:
1. Defaults below
2. Optional YAML file (config/strip_maker.yaml)
3. Environment variables (a .env file is loaded first)

The Gemini credential is required. A missing key fails at startup with
ConfigError rather than on the first request.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from strip_maker.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_PATH = Path("config/strip_maker.yaml")

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TEXT_MODEL = "gemini-3-flash-preview"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"

# Environment variable → settings field
ENV_OVERRIDES = {
    "STRIP_TEXT_MODEL": "text_model",
    "STRIP_IMAGE_MODEL": "image_model",
    "STRIP_HISTORY_DB": "history_db",
    "STRIP_OUTPUT_DIR": "output_dir",
}


@dataclass
class Settings:
    api_key: str
    text_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    api_base: str = GEMINI_API_BASE
    request_timeout: float = 120.0
    history_db: str = "data/strip_maker.db"
    output_dir: str = "data/comics"


def _load_yaml(path: Path) -> dict:
    """Load the optional settings file. Missing file → no overrides."""
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read {path}: {e}") from e
    if not isinstance(config, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(config).__name__}")
    return config


def load_settings(config_path: Optional[str] = None) -> Settings:
    """Build Settings from defaults, YAML and the environment."""
    load_dotenv()

    path = Path(config_path) if config_path else CONFIG_PATH
    overrides = {}
    for key, value in _load_yaml(path).items():
        if key in Settings.__dataclass_fields__ and key != "api_key":
            overrides[key] = value
        else:
            logger.warning(f"Ignoring unknown setting '{key}' in {path}")

    for env_name, field_name in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            overrides[field_name] = value

    if "request_timeout" in overrides:
        try:
            overrides["request_timeout"] = float(overrides["request_timeout"])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"request_timeout must be a number: {e}") from e

    api_key = os.environ.get("GOOGLE_API_KEY") or os.environ.get("API_KEY")
    if not api_key:
        raise ConfigError("GOOGLE_API_KEY not set. Add it to .env or the environment")

    return Settings(api_key=api_key, **overrides)
