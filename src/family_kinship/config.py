from __future__ import annotations

import os
from dataclasses import dataclass, field


def _s(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


def _i(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class KinshipConfig:
    db_path: str = field(default_factory=lambda: _s("FAMILY_KINSHIP_DB_PATH", "./data/family.db"))
    default_language: str = field(default_factory=lambda: _s("FAMILY_KINSHIP_DEFAULT_LANGUAGE", "en"))
    log_level: str = field(default_factory=lambda: _s("FAMILY_KINSHIP_LOG_LEVEL", "INFO").upper())

    # Families are small; the cap bounds resolver traversal cost
    max_family_members: int = field(default_factory=lambda: _i("FAMILY_KINSHIP_MAX_MEMBERS", 500))


def load_config() -> KinshipConfig:
    """Read configuration from the current environment."""
    return KinshipConfig()


CONFIG = KinshipConfig()
