"""
Configuration module
"""

from searchsync.core.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
