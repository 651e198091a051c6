"""Configuration loader for the LingoLive tutor.

Loads settings from environment variables (.env file) and config/default.yaml,
with environment variables taking precedence over YAML defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from lingolive.tutor.languages import (
    Language,
    Proficiency,
    TutorPreferences,
    parse_language,
    parse_proficiency,
)


# Project root is two levels up from this file (lingolive/core/config.py -> project root)
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


@dataclass(frozen=True)
class Settings:
    """Immutable configuration for the LingoLive tutor."""

    # Gemini
    gemini_api_key: str
    gemini_model: str
    voice: str

    # Audio
    input_sample_rate: int
    output_sample_rate: int
    input_channels: int
    capture_frame_size: int

    # Tutor defaults
    native_language: Language
    target_language: Language
    proficiency: Proficiency

    # Logging
    log_level: str

    @property
    def preferences(self) -> TutorPreferences:
        return TutorPreferences(
            native_language=self.native_language,
            target_language=self.target_language,
            proficiency=self.proficiency,
        )


def _load_yaml_defaults(yaml_path: Path) -> dict[str, Any]:
    """Load default values from a YAML config file.

    Returns:
        Dictionary of configuration values. Empty dict if file not found.
    """
    if not yaml_path.exists():
        return {}
    with open(yaml_path) as f:
        data = yaml.safe_load(f)
    return data if data else {}


def _get(env_key: str, yaml_defaults: dict[str, Any], yaml_key: str, default: Any = None) -> Any:
    """Get a config value with precedence: env var > yaml default > hardcoded default.

    Args:
        env_key: Environment variable name.
        yaml_defaults: Dictionary from YAML config file.
        yaml_key: Dot-separated key path in YAML (e.g., "audio.input_sample_rate").
        default: Fallback default value.
    """
    env_val = os.environ.get(env_key)
    if env_val is not None and env_val != "":
        return env_val

    node = yaml_defaults
    for part in yaml_key.split("."):
        if isinstance(node, dict) and part in node:
            node = node[part]
        else:
            return default
    return node if node is not None else default


def load_settings(
    env_path: Path | None = None,
    yaml_path: Path | None = None,
) -> Settings:
    """Load settings from .env and config/default.yaml.

    Environment variables take precedence over YAML defaults.

    Args:
        env_path: Path to .env file. Defaults to PROJECT_ROOT/.env.
        yaml_path: Path to YAML config. Defaults to PROJECT_ROOT/config/default.yaml.

    Returns:
        Frozen Settings dataclass with all configuration values.

    Raises:
        ValueError: If gemini_api_key is missing or a tutor default is invalid.
    """
    if env_path is None:
        env_path = PROJECT_ROOT / ".env"
    if yaml_path is None:
        yaml_path = PROJECT_ROOT / "config" / "default.yaml"

    load_dotenv(env_path, override=False)
    yaml_defaults = _load_yaml_defaults(yaml_path)

    gemini_api_key = _get("GEMINI_API_KEY", yaml_defaults, "gemini.api_key", "")
    if not gemini_api_key:
        raise ValueError(
            "GEMINI_API_KEY is required. Set it in .env or as an environment variable."
        )

    return Settings(
        gemini_api_key=gemini_api_key,
        gemini_model=str(
            _get("GEMINI_MODEL", yaml_defaults, "gemini.model",
                 "gemini-2.5-flash-native-audio-preview-09-2025")
        ),
        voice=str(_get("GEMINI_VOICE", yaml_defaults, "gemini.voice", "Kore")),
        input_sample_rate=int(
            _get("INPUT_SAMPLE_RATE", yaml_defaults, "audio.input_sample_rate", 16000)
        ),
        output_sample_rate=int(
            _get("OUTPUT_SAMPLE_RATE", yaml_defaults, "audio.output_sample_rate", 24000)
        ),
        input_channels=int(
            _get("INPUT_CHANNELS", yaml_defaults, "audio.input_channels", 1)
        ),
        capture_frame_size=int(
            _get("CAPTURE_FRAME_SIZE", yaml_defaults, "audio.frame_size", 4096)
        ),
        native_language=parse_language(str(
            _get("NATIVE_LANGUAGE", yaml_defaults, "tutor.native_language", "English")
        )),
        target_language=parse_language(str(
            _get("TARGET_LANGUAGE", yaml_defaults, "tutor.target_language", "Spanish")
        )),
        proficiency=parse_proficiency(str(
            _get("PROFICIENCY", yaml_defaults, "tutor.proficiency", "beginner")
        )),
        log_level=str(
            _get("LOG_LEVEL", yaml_defaults, "logging.level", "INFO")
        ),
    )
