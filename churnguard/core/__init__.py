"""
Core infrastructure package for the ChurnGuard risk engine.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL database connectivity via asyncpg
- FastAPI dependency injection utilities

Re-exports key components so other modules can write:

    from churnguard.core import get_settings, get_db_pool, SettingsDep
"""

# =============================================================================
# Re-exports from churnguard.core.config
# =============================================================================
from churnguard.core.config import Settings, get_settings

# =============================================================================
# Re-exports from churnguard.core.database
# =============================================================================
from churnguard.core.database import init_db, close_db, get_db_pool

# =============================================================================
# Re-exports from churnguard.core.dependencies
# =============================================================================
from churnguard.core.dependencies import get_settings_dependency, SettingsDep


__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Database pool lifecycle (from database.py)
    'init_db',
    'close_db',
    'get_db_pool',
    # FastAPI dependency injection (from dependencies.py)
    'get_settings_dependency',
    'SettingsDep',
]
