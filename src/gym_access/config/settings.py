from __future__ import annotations

from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Mapping, Optional

from ..core.constants import (
    DEFAULT_ACCESS_TOKEN_TTL_SECONDS,
    DEFAULT_QR_TOKEN_TTL_SECONDS,
    DEFAULT_REFRESH_TOKEN_TTL_SECONDS,
    MAX_QR_TOKEN_TTL_SECONDS,
    MIN_QR_TOKEN_TTL_SECONDS,
)
from ..core.exceptions import ConfigError

STORAGE_BACKENDS = frozenset({"mysql", "memory"})
DB_CONFIG_KEYS = ("host", "user", "database")


@dataclass(frozen=True)
class Settings:
    """Immutable application configuration.

    Required fields: ``jwt_secret`` and ``jwt_refresh_secret``. When
    ``storage_backend`` is ``"mysql"``, ``db_config`` must also provide
    ``host``, ``user`` and ``database``. Build instances with
    :func:`load_settings` (or directly in tests) so validation runs once at
    startup instead of on each request.
    """

    jwt_secret: str
    jwt_refresh_secret: str
    environment: str = "development"
    debug: bool = False
    storage_backend: str = "mysql"
    db_config: Mapping[str, Any] = field(default_factory=dict)
    access_token_ttl_seconds: int = DEFAULT_ACCESS_TOKEN_TTL_SECONDS
    refresh_token_ttl_seconds: int = DEFAULT_REFRESH_TOKEN_TTL_SECONDS
    qr_token_ttl_seconds: int = DEFAULT_QR_TOKEN_TTL_SECONDS
    log_level: str = "INFO"
    auto_init_db: bool = False
    auto_seed_db: bool = False

    def __post_init__(self) -> None:
        if not self.jwt_secret:
            raise ConfigError("JWT_SECRET is not set")
        if not self.jwt_refresh_secret:
            raise ConfigError("JWT_REFRESH_SECRET is not set")
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ConfigError(
                f"STORAGE_BACKEND must be one of {sorted(STORAGE_BACKENDS)}, got {self.storage_backend!r}"
            )
        if self.storage_backend == "mysql":
            missing = [k for k in DB_CONFIG_KEYS if not self.db_config.get(k)]
            if missing:
                raise ConfigError(f"DB_CONFIG is missing: {', '.join(missing)}")
        if self.access_token_ttl_seconds <= 0 or self.refresh_token_ttl_seconds <= 0:
            raise ConfigError("Token TTLs must be positive")
        if not MIN_QR_TOKEN_TTL_SECONDS <= self.qr_token_ttl_seconds <= MAX_QR_TOKEN_TTL_SECONDS:
            raise ConfigError(
                f"QR_TOKEN_TTL_SECONDS must be between {MIN_QR_TOKEN_TTL_SECONDS} and {MAX_QR_TOKEN_TTL_SECONDS}"
            )

    @property
    def secure_cookies(self) -> bool:
        return self.environment != "development"

    def describe_db(self) -> str:
        if self.storage_backend == "memory":
            return "memory"
        c = self.db_config
        return f"{c.get('user')}@{c.get('host')}:{c.get('port', 3306)}/{c.get('database')}"


def load_settings(module: ModuleType | Mapping[str, Any]) -> Settings:
    """Build :class:`Settings` from a settings module (or a plain mapping).

    Raises ConfigError if required fields are absent.
    """

    def get(name: str, default: Optional[Any] = None) -> Any:
        if isinstance(module, Mapping):
            return module.get(name, default)
        return getattr(module, name, default)

    return Settings(
        jwt_secret=get("JWT_SECRET") or "",
        jwt_refresh_secret=get("JWT_REFRESH_SECRET") or "",
        environment=str(get("ENVIRONMENT", "development")),
        debug=bool(get("DEBUG", False)),
        storage_backend=str(get("STORAGE_BACKEND", "mysql")).lower(),
        db_config=dict(get("DB_CONFIG") or {}),
        access_token_ttl_seconds=int(get("ACCESS_TOKEN_TTL_SECONDS", DEFAULT_ACCESS_TOKEN_TTL_SECONDS)),
        refresh_token_ttl_seconds=int(get("REFRESH_TOKEN_TTL_SECONDS", DEFAULT_REFRESH_TOKEN_TTL_SECONDS)),
        qr_token_ttl_seconds=int(get("QR_TOKEN_TTL_SECONDS", DEFAULT_QR_TOKEN_TTL_SECONDS)),
        log_level=str(get("LOG_LEVEL", "INFO")),
        auto_init_db=bool(get("AUTO_INIT_DB", False)),
        auto_seed_db=bool(get("AUTO_SEED_DB", False)),
    )
