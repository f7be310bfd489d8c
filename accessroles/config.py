"""
Settings for the access roles service.

Read from the environment (a local .env file is honoured):
- ACCESSROLES_DEFAULT_ROLES: JSON object, principal -> list of roles
- ACCESSROLES_LOG_LEVEL: loguru level name (default INFO)

Database settings live in storage.database.DatabaseConfig.
"""

import json
import os
import sys
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional

import dotenv
from loguru import logger

from accessroles.constants import DEFAULT_ACCESS_ROLES

dotenv.load_dotenv()


def load_default_roles(raw: Optional[str] = None) -> Mapping[str, FrozenSet[str]]:
    """
    Parse the default access roles.

    Args:
        raw: JSON text; falls back to ACCESSROLES_DEFAULT_ROLES, then to
            the built-in DEFAULT_ACCESS_ROLES

    Returns:
        Read-only mapping of principal -> frozenset of roles

    Raises:
        ValueError if the text is not a non-empty JSON object of
        non-empty principal names to non-empty lists of role names
    """
    if raw is None:
        raw = os.getenv("ACCESSROLES_DEFAULT_ROLES")
    if not raw:
        return DEFAULT_ACCESS_ROLES

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"ACCESSROLES_DEFAULT_ROLES is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not data:
        raise ValueError("ACCESSROLES_DEFAULT_ROLES must be a non-empty JSON object")

    roles = {}
    for principal, names in data.items():
        if not principal.strip():
            raise ValueError("ACCESSROLES_DEFAULT_ROLES has an empty principal")
        if not isinstance(names, list) or not names:
            raise ValueError(f"Default roles for '{principal}' must be a non-empty list")
        if not all(isinstance(name, str) and name.strip() for name in names):
            raise ValueError(f"Default roles for '{principal}' contain an empty role")
        roles[principal.strip()] = frozenset(name.strip() for name in names)

    return MappingProxyType(roles)


@dataclass(frozen=True)
class AccessRolesSettings:
    """Process-wide settings, loaded once at startup."""
    default_roles: Mapping[str, FrozenSet[str]] = field(default_factory=lambda: DEFAULT_ACCESS_ROLES)
    log_level: str = "INFO"


def load_settings() -> AccessRolesSettings:
    """Build settings from environment variables."""
    settings = AccessRolesSettings(
        default_roles=load_default_roles(),
        log_level=os.getenv("ACCESSROLES_LOG_LEVEL", "INFO").upper(),
    )
    logger.info(
        f"Access roles settings: log_level={settings.log_level}, "
        f"default principals={sorted(settings.default_roles)}"
    )
    return settings


def configure_logging(level: str = "INFO") -> None:
    """Send loguru output to stderr at the given level."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
