import os
from dataclasses import dataclass

from sqlalchemy.engine import URL


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    db_ssl: bool
    port: int
    csrf_enabled: bool
    password_hash_method: str
    log_level: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _flag(name: str, default: str = "") -> bool:
    return _getenv(name, default).lower() in ("1", "true", "yes", "on")


def _port() -> int:
    raw = _getenv("PORT", "3000")
    try:
        port = int(raw)
    except ValueError:
        raise ValueError(f"Invalid PORT value {raw!r}. Must be an integer 1-65535.") from None
    if not 1 <= port <= 65535:
        raise ValueError(f"Invalid PORT value {raw!r}. Must be an integer 1-65535.")
    return port


def _rds_database_url() -> str:
    # Local-dev fallbacks match the RDS_* variables set on the hosted environment.
    url = URL.create(
        "postgresql+psycopg2",
        username=_getenv("RDS_USERNAME", "postgres"),
        password=_getenv("RDS_PASSWORD", "admin"),
        host=_getenv("RDS_HOSTNAME", "localhost"),
        port=int(_getenv("RDS_PORT", "5432")),
        database=_getenv("RDS_DB_NAME", "project3"),
    )
    return url.render_as_string(hide_password=False)


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SESSION_SECRET") or _getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL") or _rds_database_url(),
        db_ssl=_flag("DB_SSL"),
        port=_port(),
        csrf_enabled=_flag("CSRF_ENABLED", "1"),
        password_hash_method=_getenv("PASSWORD_HASH_METHOD", "scrypt:32768:8:1"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "DB_SSL": s.db_ssl,
        "PORT": s.port,
        "CSRF_ENABLED": s.csrf_enabled,
        "PASSWORD_HASH_METHOD": s.password_hash_method,
        "LOG_LEVEL": s.log_level,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
    }
