"""
Configuration models and loading.

This module provides Pydantic models for classboard configuration
with multi-layer merging: defaults < user < project < env vars.
"""

from .loader import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    get_xdg_state_home,
    load_config,
)
from .models import (
    ApiConfig,
    ClassboardConfig,
    SessionConfig,
    SyncConfig,
)

__all__ = [
    # Models
    "ApiConfig",
    "ClassboardConfig",
    "SessionConfig",
    "SyncConfig",
    # Loader functions
    "clear_cache",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "get_xdg_state_home",
    "load_config",
]
