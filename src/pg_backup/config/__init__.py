"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from pg_backup.config import load_db_config, DatabaseProfile, DatabaseConfig
"""

from pg_backup.config.loader import load_db_config
from pg_backup.config.models import DatabaseConfig, DatabaseProfile

__all__ = ["load_db_config", "DatabaseConfig", "DatabaseProfile"]
