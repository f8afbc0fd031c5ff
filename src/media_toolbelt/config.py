"""
Configuration management with YAML loading and environment variable support.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import CONVERTED_DIR


@dataclass
class VideoConfig:
    convert_crf: int = 28
    minify_crf: int = 28
    avi_crf: int = 23
    audio_bitrate: str = "128k"
    small_bitrate_kb: int = 2600
    convert_dir: str = CONVERTED_DIR


@dataclass
class ImagesConfig:
    pdf_resolution: int = 72
    pdf_quality: int = 90


@dataclass
class DisplayConfig:
    color: bool = True


@dataclass
class LoggingConfig:
    level: str = field(default_factory=lambda: os.environ.get("MTB_LOG_LEVEL", "WARNING"))


_SECTIONS = ("video", "images", "display", "logging")


@dataclass
class AppConfig:
    """Settings shared by every tool, built once per process."""

    # Explicit executable paths, keyed by executable name (e.g. ffmpeg: /opt/ffmpeg/bin/ffmpeg)
    tools: dict[str, Path] = field(default_factory=dict)
    video: VideoConfig = field(default_factory=VideoConfig)
    images: ImagesConfig = field(default_factory=ImagesConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        """Load configuration from YAML file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "AppConfig":
        """Create config from dictionary, ignoring unknown keys."""
        config = cls()

        for name, value in (data.get("tools") or {}).items():
            if value:
                config.tools[str(name)] = Path(str(value)).expanduser()

        for section_name in _SECTIONS:
            section = getattr(config, section_name)
            for key, value in (data.get(section_name) or {}).items():
                if hasattr(section, key):
                    setattr(section, key, value)

        return config

    def to_dict(self) -> dict:
        """Convert config to a plain dictionary (paths as strings)."""
        result: dict = {"tools": {name: str(path) for name, path in self.tools.items()}}
        for section_name in _SECTIONS:
            result[section_name] = dict(vars(getattr(self, section_name)))
        return result


def _get_default_config_dir() -> Path:
    """Get default config directory."""
    if config_dir := os.environ.get("MTB_CONFIG_DIR"):
        return Path(config_dir)

    if xdg_config := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_config) / "media-toolbelt"

    return Path.home() / ".config" / "media-toolbelt"


def find_config_file(config_path: Path | None = None) -> Path | None:
    """
    Locate the configuration file.

    Search order:
    1. Explicit path argument
    2. MTB_CONFIG environment variable
    3. <config dir>/config.yaml (MTB_CONFIG_DIR, XDG_CONFIG_HOME or ~/.config)
    4. ./mtb.yaml

    Returns:
        The first existing candidate, or None
    """
    if config_path is not None:
        return config_path

    if env_path := os.environ.get("MTB_CONFIG"):
        return Path(env_path).expanduser()

    for candidate in (_get_default_config_dir() / "config.yaml", Path.cwd() / "mtb.yaml"):
        if candidate.exists():
            return candidate

    return None


def load_config(config_path: Path | None = None) -> AppConfig:
    """
    Load configuration, falling back to defaults when no file exists.

    Args:
        config_path: Explicit config file (overrides the search order)

    Returns:
        AppConfig instance
    """
    path = find_config_file(config_path)
    if path is None:
        return AppConfig()
    return AppConfig.from_yaml(path)
