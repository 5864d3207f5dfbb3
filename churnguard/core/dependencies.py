"""
FastAPI dependency injection utilities for the ChurnGuard API.

Provides:
- get_settings_dependency(): returns the cached Settings singleton
- SettingsDep: Annotated alias for endpoint signatures

Tests override it through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

from churnguard.core.config import Settings, get_settings


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can use
    ``app.dependency_overrides[get_settings_dependency] = lambda: test_settings``.
    """
    return get_settings()


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]
