"""MenuTrail core module.

Shared components used across the API and services:
- Configuration management
- Cached settings accessor
"""

from menutrail.core.config import (
    ConfigValidationError,
    Environment,
    SandboxSettings,
    Settings,
    validate_settings,
)
from menutrail.core.settings import (
    clear_settings_cache,
    get_settings,
    get_settings_safe,
)

__all__ = [
    "ConfigValidationError",
    "Environment",
    "SandboxSettings",
    "Settings",
    "clear_settings_cache",
    "get_settings",
    "get_settings_safe",
    "validate_settings",
]
