"""TongConfig — framework settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from tong.exceptions import InvalidArgument

# Multipart bodies keep up to this many bytes per part in memory before
# spilling file parts to temporary storage.
DEFAULT_MULTIPART_MEMORY = 32 << 20


@dataclass(frozen=True)
class TongConfig:
    """Immutable settings shared by the app, its pool and every context."""

    pool_size: int = 256
    multipart_memory: int = DEFAULT_MULTIPART_MEMORY
    max_files: int = 1000
    max_fields: int = 1000
    json_chunk_size: int = 64 * 1024
    log_json: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, prefix: str = "TONG_") -> TongConfig:
        """Build a config from ``<prefix>*`` environment variables."""
        defaults = cls()
        return cls(
            pool_size=_env_int(f"{prefix}POOL_SIZE", defaults.pool_size),
            multipart_memory=_env_int(
                f"{prefix}MULTIPART_MEMORY", defaults.multipart_memory
            ),
            max_files=_env_int(f"{prefix}MAX_FILES", defaults.max_files),
            max_fields=_env_int(f"{prefix}MAX_FIELDS", defaults.max_fields),
            json_chunk_size=_env_int(
                f"{prefix}JSON_CHUNK_SIZE", defaults.json_chunk_size
            ),
            log_json=os.getenv(f"{prefix}LOG_JSON", "").lower() in ("1", "true", "yes"),
            log_level=os.getenv(f"{prefix}LOG_LEVEL", defaults.log_level).upper(),
        )


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidArgument(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise InvalidArgument(f"{name} must be positive, got {value}")
    return value
