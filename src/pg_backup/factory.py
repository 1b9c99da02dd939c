"""Connection URL resolution from db.toml profiles.

Profiles only ever produce a URL string.  The URL is passed explicitly to
each operation; nothing here caches a connection or a "current" database.

Usage:
    from pg_backup.factory import get_profile_url, resolve_target

    url = get_profile_url("staging")
    url = resolve_target("postgresql://app@localhost/app")  # URLs pass through
"""

import logging
import os
from pathlib import Path
from urllib.parse import quote

from pg_backup.config.loader import load_db_config
from pg_backup.config.models import DatabaseProfile
from pg_backup.errors import ProfileNotFoundError

logger = logging.getLogger(__name__)

PASSWORD_PLACEHOLDER = "[YOUR-PASSWORD]"

_URL_SCHEMES = ("postgres://", "postgresql://", "postgresql+")


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with the ``[YOUR-PASSWORD]`` placeholder replaced by
        the URL-quoted ``db_password``

    Example:
        >>> resolve_url(DatabaseProfile(
        ...     url="postgresql://app:[YOUR-PASSWORD]@db/app", db_password="p@ss"))
        'postgresql://app:p%40ss@db/app'
    """
    url = profile.url
    if profile.db_password and PASSWORD_PLACEHOLDER in url:
        url = url.replace(PASSWORD_PLACEHOLDER, quote(profile.db_password, safe=""))
    return url


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get the profile named by the ``{env_prefix}DB_PROFILE`` env var.

    Raises:
        ProfileNotFoundError: If the variable is unset or empty
    """
    var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(var)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {var}=<name>, or pass --profile NAME or --url URL."
    )


def get_profile_url(name: str, config_path: Path | str | None = None) -> str:
    """Look up a profile in db.toml and return its resolved URL.

    Raises:
        ProfileNotFoundError: If the profile is not in the config
        FileNotFoundError: If db.toml does not exist
    """
    config = load_db_config(config_path)
    if name not in config.profiles:
        available = ", ".join(config.profiles.keys()) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{name}' not found in db.toml. Available: {available}"
        )
    logger.debug("Using profile %s", name)
    return resolve_url(config.profiles[name])


def resolve_target(value: str, config_path: Path | str | None = None) -> str:
    """Treat *value* as a URL if it looks like one, else as a profile name."""
    if value.startswith(_URL_SCHEMES):
        return value
    return get_profile_url(value, config_path)
