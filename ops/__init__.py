"""
Operations package for the Mumbai Ward Maps pipeline

This package centralizes all operational tools including:
- Configuration management
- Refresh scheduling
- CLI utilities

The Config class is exposed at the package level for convenient imports:
    from ops import Config
"""

from .config_loader import Config

__all__ = ["Config"]
