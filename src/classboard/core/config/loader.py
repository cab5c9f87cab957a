"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import os
from pathlib import Path
from typing import Any

from .models import ClassboardConfig

# Global cache to avoid reloading config multiple times per process
_config_cache: ClassboardConfig | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_xdg_state_home() -> Path:
    """
    Get XDG state home directory.

    Returns:
        Path to state directory (defaults to ~/.local/state)
    """
    if xdg_state := os.environ.get("XDG_STATE_HOME"):
        return Path(xdg_state)
    return Path.home() / ".local" / "state"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/classboard/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "classboard" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .classboard.json in the working directory
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".classboard.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> base = {"a": 1, "b": {"x": 10, "y": 20}}
        >>> override = {"b": {"y": 30, "z": 40}, "c": 3}
        >>> deep_merge(base, override)
        {"a": 1, "b": {"x": 10, "y": 30, "z": 40}, "c": 3}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient to a broken file
        print(f"Warning: Failed to parse config at {path}: {e}")
        return None


def _set_nested(result: dict[str, Any], section: str, key: str, value: Any) -> None:
    if not isinstance(result.get(section), dict):
        result[section] = {}
    result[section][key] = value


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        CLASSBOARD_API_URL - overrides api.base_url
        CLASSBOARD_TIMEOUT - overrides api.timeout_seconds
        CLASSBOARD_POLL_INTERVAL - overrides sync.poll_interval_seconds
        CLASSBOARD_CHUNK_SIZE - overrides sync.chunk_size
        CLASSBOARD_SESSION_ID - overrides session.session_id
        CLASSBOARD_STATE_DIR - overrides session.state_dir

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    if api_url := os.environ.get("CLASSBOARD_API_URL"):
        _set_nested(result, "api", "base_url", api_url)

    if timeout_str := os.environ.get("CLASSBOARD_TIMEOUT"):
        try:
            timeout = float(timeout_str)
            if timeout <= 0:
                print(f"Warning: CLASSBOARD_TIMEOUT must be > 0, got {timeout}, ignoring")
            else:
                _set_nested(result, "api", "timeout_seconds", timeout)
        except ValueError:
            print(f"Warning: Invalid CLASSBOARD_TIMEOUT value '{timeout_str}', ignoring")

    if interval_str := os.environ.get("CLASSBOARD_POLL_INTERVAL"):
        try:
            interval = float(interval_str)
            if interval <= 0:
                print(
                    f"Warning: CLASSBOARD_POLL_INTERVAL must be > 0, got {interval}, ignoring"
                )
            else:
                _set_nested(result, "sync", "poll_interval_seconds", interval)
        except ValueError:
            print(f"Warning: Invalid CLASSBOARD_POLL_INTERVAL value '{interval_str}', ignoring")

    if chunk_str := os.environ.get("CLASSBOARD_CHUNK_SIZE"):
        try:
            chunk_size = int(chunk_str)
            if chunk_size < 1:
                print(f"Warning: CLASSBOARD_CHUNK_SIZE must be >= 1, got {chunk_size}, ignoring")
            else:
                _set_nested(result, "sync", "chunk_size", chunk_size)
        except ValueError:
            print(f"Warning: Invalid CLASSBOARD_CHUNK_SIZE value '{chunk_str}', ignoring")

    if session_id := os.environ.get("CLASSBOARD_SESSION_ID"):
        _set_nested(result, "session", "session_id", session_id)

    if state_dir := os.environ.get("CLASSBOARD_STATE_DIR"):
        _set_nested(result, "session", "state_dir", state_dir)

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "api": {"base_url": "http://localhost:5000", "timeout_seconds": 30.0},
        "sync": {"chunk_size": 150, "poll_interval_seconds": 15.0},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> ClassboardConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (CLASSBOARD_*)
        2. Project config (.classboard.json)
        3. User config (~/.config/classboard/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Directory to load .classboard.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated ClassboardConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation

    Example:
        >>> config = load_config()
        >>> config.sync.chunk_size
        150
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = ClassboardConfig(**merged)

    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
