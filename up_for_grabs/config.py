"""
Configuration management for Up For Grabs.

Settings are resolved from (highest priority first):
1. Values set explicitly through the setters below (CLI flags)
2. Environment variables (a local .env file is honoured)
3. .up-for-grabs.toml in the project root
4. Built-in defaults
"""

import os
import tomllib
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# project_root is the parent directory of up_for_grabs/
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Global configuration for SSL verification
# Can be set to False by CLI --insecure flag
VERIFY_SSL = True

DEFAULT_GITHUB_API = "https://api.github.com"

# Default cache directory: ~/.cache/up-for-grabs
DEFAULT_CACHE_DIR = Path.home() / ".cache" / "up-for-grabs"
# Cached issue counts are trusted for 24 hours
DEFAULT_FRESHNESS_WINDOW = 24 * 60 * 60

_CACHE_DIR: Path | None = None
_FRESHNESS_WINDOW: int | None = None


def load_config_file(config_path: Path) -> dict:
    """Load a TOML configuration file."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}") from e


def _get_cache_config() -> dict:
    """Return the [tool.up-for-grabs.cache] table of the local config file."""
    local_config_path = PROJECT_ROOT / ".up-for-grabs.toml"
    config = load_config_file(local_config_path)
    return config.get("tool", {}).get("up-for-grabs", {}).get("cache", {})


def set_verify_ssl(verify: bool) -> None:
    """
    Set the SSL verification setting globally.

    Args:
        verify: Whether to verify SSL certificates.
    """
    global VERIFY_SSL
    VERIFY_SSL = verify


def get_verify_ssl() -> bool:
    """Get the current SSL verification setting."""
    return VERIFY_SSL


def get_github_token() -> str | None:
    """Return the GitHub token from GITHUB_TOKEN, or None when unset or empty."""
    token = os.getenv("GITHUB_TOKEN")
    return token or None


def get_github_api_base() -> str:
    """Return the GitHub REST API base URL without a trailing slash."""
    return os.getenv("UP_FOR_GRABS_GITHUB_API", DEFAULT_GITHUB_API).rstrip("/")


def get_cache_dir() -> Path:
    """
    Get the cache directory path.

    Priority:
    1. Explicitly set value via set_cache_dir()
    2. UP_FOR_GRABS_CACHE_DIR environment variable
    3. .up-for-grabs.toml config
    4. Default: ~/.cache/up-for-grabs

    Returns:
        Path to the cache directory.
    """
    if _CACHE_DIR is not None:
        return _CACHE_DIR

    env_cache_dir = os.getenv("UP_FOR_GRABS_CACHE_DIR")
    if env_cache_dir:
        return Path(env_cache_dir).expanduser()

    cache_config = _get_cache_config()
    if "directory" in cache_config:
        return Path(cache_config["directory"]).expanduser()

    return DEFAULT_CACHE_DIR


def set_cache_dir(path: Path | str | None) -> None:
    """
    Set the cache directory path explicitly.

    Args:
        path: Path to the cache directory, or None to fall back to the
            environment and config file again.
    """
    global _CACHE_DIR
    _CACHE_DIR = Path(path).expanduser() if path is not None else None


def get_freshness_window() -> int:
    """
    Get the maximum age (in seconds) of a cached issue count.

    Priority:
    1. Explicitly set value via set_freshness_window()
    2. UP_FOR_GRABS_FRESHNESS_WINDOW environment variable
    3. .up-for-grabs.toml config (freshness_seconds)
    4. Default: 86400 (24 hours)

    Returns:
        Freshness window in seconds.
    """
    if _FRESHNESS_WINDOW is not None:
        return _FRESHNESS_WINDOW

    env_window = os.getenv("UP_FOR_GRABS_FRESHNESS_WINDOW")
    if env_window:
        try:
            return int(env_window)
        except ValueError:
            pass

    cache_config = _get_cache_config()
    if "freshness_seconds" in cache_config:
        return int(cache_config["freshness_seconds"])

    return DEFAULT_FRESHNESS_WINDOW


def set_freshness_window(seconds: int | None) -> None:
    """
    Set the freshness window explicitly.

    Args:
        seconds: Window in seconds, or None to clear the override.
    """
    global _FRESHNESS_WINDOW
    _FRESHNESS_WINDOW = seconds
