"""
Configuration management for the outline bridge.

Conversion settings come from environment variables, optionally loaded from a
project-scoped .env file with python-dotenv. No implicit loading occurs at
import time, and the conversion functions never read the environment: callers
build a ConversionOptions from Config and pass it in.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .debug_log import is_debug_enabled
from .types import ConversionOptions


class ConfigError(Exception):
    """Raised when configuration is invalid."""

    pass


@lru_cache(maxsize=32)
def load_config(env_path: Optional[str] = None, override: bool = False) -> None:
    """Explicitly load environment variables from the given .env file path.

    Notes:
    - This function does NOT perform implicit loading when env_path is None.
    - Callers should pass a project-scoped env path resolved via helpers in this module.
    """
    if env_path:
        load_dotenv(dotenv_path=env_path, override=override)


def _int_setting(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{raw}'")
    if value < minimum:
        raise ConfigError(f"{name} must be at least {minimum}, got {value}")
    return value


class Config:
    """Configuration settings for the outline bridge."""

    def __init__(self):
        # Do not implicitly load any .env here. Consumers must call project-scoped loaders explicitly.
        pass

    @property
    def indent_unit(self) -> int:
        """Spaces per nesting level (default: 2)."""
        return _int_setting("OB_INDENT_UNIT", 2, minimum=1)

    @property
    def tab_width(self) -> int:
        """Spaces a tab expands to before levels are computed (default: 2)."""
        return _int_setting("OB_TAB_WIDTH", 2, minimum=0)

    @property
    def link_target(self) -> str:
        """Target attribute for external links (default: _blank)."""
        return os.getenv("OB_LINK_TARGET", "_blank").strip() or "_blank"

    @property
    def debug_enabled(self) -> bool:
        return is_debug_enabled()

    def conversion_options(self) -> ConversionOptions:
        """
        Build conversion options from the environment.

        Raises:
            ConfigError: If a numeric setting is not a valid integer
        """
        return ConversionOptions(indent_unit=self.indent_unit, tab_width=self.tab_width, link_target=self.link_target)


# Global config instance
config = Config()

# --- Project-scoped environment helpers ---

DEFAULT_ENV_FILENAME = os.getenv("OB_ENV_FILENAME", ".env")
ENV_FILE_ENV_VARS = ("OB_ENV_FILE", "OUTLINE_BRIDGE_ENV_FILE")
PROJECT_ROOT_ENV_VARS = ("OB_PROJECT_ROOT", "OUTLINE_BRIDGE_PROJECT_ROOT")
METADATA_DIRNAME = ".outline_bridge"


def detect_project_root(start_dir: Optional[str] = None) -> Optional[Path]:
    """Detect project root by looking for a .outline_bridge directory upwards from start_dir (or CWD)."""
    start = Path(start_dir) if start_dir else Path.cwd()
    for current in [start] + list(start.parents):
        if (current / METADATA_DIRNAME).exists():
            return current
    return None


def get_project_metadata_dir(project_root: Optional[str] = None) -> Path:
    """Return the .outline_bridge directory for a given or detected project root."""
    root = Path(project_root) if project_root else (detect_project_root() or Path.cwd())
    return root / METADATA_DIRNAME


def get_project_env_path(project_root: Optional[str] = None, filename: str = DEFAULT_ENV_FILENAME) -> Path:
    """Compute the path to the project-scoped environment file inside .outline_bridge."""
    return get_project_metadata_dir(project_root) / filename


def load_project_env(project_root: Optional[str] = None, filename: str = DEFAULT_ENV_FILENAME, override: bool = False) -> Optional[str]:
    """
    Load a project-scoped environment file, if available.

    Load order (first match wins):
    1) Explicit env file path via OB_ENV_FILE or OUTLINE_BRIDGE_ENV_FILE
    2) <project_root>/.outline_bridge/<filename> (default: .env)

    Returns the path loaded, or None if nothing was loaded.
    """
    for var in ENV_FILE_ENV_VARS:
        explicit = os.getenv(var)
        if explicit and Path(explicit).is_file():
            load_config(explicit, override=override)
            return explicit

    if project_root is None:
        for var in PROJECT_ROOT_ENV_VARS:
            if os.getenv(var):
                project_root = os.getenv(var)
                break
    if project_root is None:
        detected = detect_project_root()
        project_root = str(detected) if detected else None

    if project_root:
        env_path = get_project_env_path(project_root, filename)
        if env_path.is_file():
            load_config(str(env_path), override=override)
            return str(env_path)

    return None


def validate_config() -> ConversionOptions:
    """
    Validate the conversion settings in the environment.

    Returns:
        The options the settings describe

    Raises:
        ConfigError: If a setting is invalid
    """
    return config.conversion_options()
