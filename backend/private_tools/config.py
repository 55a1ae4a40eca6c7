import json
import os
import threading
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .rbac.routes import normalize_route_key


load_dotenv()


_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_WORDS:
        return True
    if value in _FALSE_WORDS:
        return False
    raise ValueError(f"{name} must be a boolean value")


def _parse_route_setting(name: str, raw: str) -> str:
    value = normalize_route_key(raw)
    if not value:
        raise ValueError(f"{name} must not be empty")
    return value


class Settings(BaseModel):
    app_name: str = Field(default="Private Tools")
    debug: bool = Field(default=False)
    database_url: str = Field(default="")
    allowed_origins: list[str] = Field(default_factory=list)
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_recycle: int = Field(default=1800)
    db_pool_pre_ping: bool = Field(default=True)
    identity_jwt_key: str | None = Field(default=None)
    identity_jwt_algorithm: str = Field(default="RS256")
    identity_jwt_audience: str | None = Field(default=None)
    protected_role_name: str = Field(default="superadmin")
    default_role_name: str = Field(default="member")
    permissions_admin_route: str = Field(default="admin/settings")
    users_admin_route: str = Field(default="admin/users")
    audit_route: str = Field(default="activity")

    @classmethod
    def from_env(cls) -> "Settings":
        identity_jwt_key = os.getenv("IDENTITY_JWT_KEY", "").strip()
        if not identity_jwt_key:
            raise ValueError("IDENTITY_JWT_KEY environment variable must be set")
        # PEM keys are commonly stored with escaped newlines in .env files
        identity_jwt_key = identity_jwt_key.replace("\\n", "\n")

        raw_allowed_origins = os.getenv("ALLOWED_ORIGINS", "").strip()
        if not raw_allowed_origins:
            raise ValueError("ALLOWED_ORIGINS environment variable must be set")

        # Support both CSV format and JSON array format
        allowed_origins: list[str] = []
        if raw_allowed_origins.startswith("["):
            try:
                parsed_list = json.loads(raw_allowed_origins)
                if not isinstance(parsed_list, list):
                    raise ValueError("ALLOWED_ORIGINS JSON must be an array")
                allowed_origins = [
                    origin.strip() for origin in parsed_list if isinstance(origin, str) and origin.strip()
                ]
            except json.JSONDecodeError as exc:
                raise ValueError(f"ALLOWED_ORIGINS JSON is malformed: {exc}") from exc
        else:
            allowed_origins = [
                origin.strip() for origin in raw_allowed_origins.split(",") if origin.strip()
            ]

        if not allowed_origins:
            raise ValueError("ALLOWED_ORIGINS must contain at least one origin")

        if "*" in allowed_origins:
            raise ValueError(
                "ALLOWED_ORIGINS cannot contain '*' when credentialed requests are used"
            )

        for origin in allowed_origins:
            parsed = urlparse(origin)
            if parsed.scheme not in {"http", "https"} or not parsed.netloc:
                raise ValueError(
                    "ALLOWED_ORIGINS must contain valid http/https origins with host"
                )

        database_url = os.getenv("DATABASE_URL", "").strip()
        if not database_url:
            raise ValueError("DATABASE_URL environment variable must be set")

        parsed_db = urlparse(database_url)
        if parsed_db.scheme != "postgresql+asyncpg":
            raise ValueError("DATABASE_URL must start with 'postgresql+asyncpg://'")
        if not parsed_db.hostname:
            raise ValueError("DATABASE_URL must include hostname")

        db_pool_size = int(os.getenv("DB_POOL_SIZE", cls.model_fields["db_pool_size"].default))
        if db_pool_size <= 0:
            raise ValueError("DB_POOL_SIZE must be greater than 0")

        db_max_overflow = int(
            os.getenv("DB_MAX_OVERFLOW", cls.model_fields["db_max_overflow"].default)
        )
        if db_max_overflow < 0:
            raise ValueError("DB_MAX_OVERFLOW must be greater than or equal to 0")

        db_pool_recycle = int(
            os.getenv("DB_POOL_RECYCLE", cls.model_fields["db_pool_recycle"].default)
        )
        if db_pool_recycle <= 0:
            raise ValueError("DB_POOL_RECYCLE must be greater than 0")

        db_pool_pre_ping = _parse_bool(
            "DB_POOL_PRE_PING",
            os.getenv("DB_POOL_PRE_PING", str(cls.model_fields["db_pool_pre_ping"].default)),
        )

        protected_role_name = os.getenv(
            "PROTECTED_ROLE_NAME", cls.model_fields["protected_role_name"].default
        ).strip().lower()
        if not protected_role_name:
            raise ValueError("PROTECTED_ROLE_NAME must not be empty")

        default_role_name = os.getenv(
            "DEFAULT_ROLE_NAME", cls.model_fields["default_role_name"].default
        ).strip().lower()
        if not default_role_name:
            raise ValueError("DEFAULT_ROLE_NAME must not be empty")
        if default_role_name == protected_role_name:
            raise ValueError("DEFAULT_ROLE_NAME must differ from PROTECTED_ROLE_NAME")

        identity_jwt_audience = os.getenv("IDENTITY_JWT_AUDIENCE", "").strip() or None

        return cls(
            app_name=os.getenv("APP_NAME", cls.model_fields["app_name"].default),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            database_url=database_url,
            allowed_origins=allowed_origins,
            db_pool_size=db_pool_size,
            db_max_overflow=db_max_overflow,
            db_pool_recycle=db_pool_recycle,
            db_pool_pre_ping=db_pool_pre_ping,
            identity_jwt_key=identity_jwt_key,
            identity_jwt_algorithm=os.getenv(
                "IDENTITY_JWT_ALGORITHM",
                cls.model_fields["identity_jwt_algorithm"].default,
            ).strip(),
            identity_jwt_audience=identity_jwt_audience,
            protected_role_name=protected_role_name,
            default_role_name=default_role_name,
            permissions_admin_route=_parse_route_setting(
                "PERMISSIONS_ADMIN_ROUTE",
                os.getenv(
                    "PERMISSIONS_ADMIN_ROUTE",
                    cls.model_fields["permissions_admin_route"].default,
                ),
            ),
            users_admin_route=_parse_route_setting(
                "USERS_ADMIN_ROUTE",
                os.getenv("USERS_ADMIN_ROUTE", cls.model_fields["users_admin_route"].default),
            ),
            audit_route=_parse_route_setting(
                "AUDIT_ROUTE",
                os.getenv("AUDIT_ROUTE", cls.model_fields["audit_route"].default),
            ),
        )


# Settings are built on first access so the package can be imported without
# a complete environment.
_settings_instance: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get settings instance, creating it on first access.

    Uses double-checked locking so concurrent first access from several
    threads or tasks builds the settings exactly once.

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    global _settings_instance

    if _settings_instance is not None:
        return _settings_instance

    with _settings_lock:
        if _settings_instance is None:
            _settings_instance = Settings.from_env()

    return _settings_instance


class _SettingsProxy:
    """Proxy to defer settings creation until first attribute access."""

    def __getattr__(self, name: str):
        return getattr(get_settings(), name)


settings = _SettingsProxy()  # type: ignore[assignment]
