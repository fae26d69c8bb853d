from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

SUPPORTED_DB_TYPES = {"sqlite", "mongodb"}
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./data/tiddlers.db"


def _split_csv(value: str | None) -> tuple[str, ...]:
    if not value:
        return tuple()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _env(name: str) -> str | None:
    raw_value = os.getenv(name)
    if raw_value is None:
        return None
    normalized = raw_value.strip()
    return normalized or None


def _flag(name: str, default: str = "false") -> bool:
    return (os.getenv(name) or default).strip().lower() in {"1", "true", "yes"}


def collect_missing_required_env_vars() -> list[str]:
    missing: list[str] = []

    db_type = (_env("DB_TYPE") or "sqlite").lower()
    if db_type == "mongodb":
        if _env("MONGO_URL") is None:
            missing.append("MONGO_URL")
        if _env("DB_NAME") is None:
            missing.append("DB_NAME")

    if _flag("S3_ENABLE"):
        for var_name in (
            "S3_ACCESS_KEY",
            "S3_SECRET_KEY",
            "S3_ENDPOINT_URL",
            "S3_BUCKET_NAME",
            "S3_PUBLIC_URL_BASE",
        ):
            if _env(var_name) is None:
                missing.append(var_name)

    return sorted(set(missing))


def collect_invalid_env_values() -> list[str]:
    invalid_values: list[str] = []

    db_type = (_env("DB_TYPE") or "sqlite").lower()
    if db_type not in SUPPORTED_DB_TYPES:
        invalid_values.append("DB_TYPE must be one of: sqlite, mongodb")

    for var_name in ("S3_PRESIGN_TTL_SECONDS", "S3_REQUEST_TIMEOUT_SECONDS"):
        raw = _env(var_name)
        if raw is None:
            continue
        try:
            parsed = int(raw)
            if parsed <= 0:
                raise ValueError("must be positive")
        except ValueError:
            invalid_values.append(f"{var_name} must be a positive integer")

    return invalid_values


def validate_required_environment() -> None:
    missing_vars = collect_missing_required_env_vars()
    invalid_values = collect_invalid_env_values()
    if not missing_vars and not invalid_values:
        return

    message_lines = ["Application startup blocked by invalid environment configuration."]
    if missing_vars:
        message_lines.append("")
        message_lines.append("Missing required environment variables:")
        message_lines.extend(f"- {name}" for name in missing_vars)
    if invalid_values:
        message_lines.append("")
        message_lines.append("Invalid environment values:")
        message_lines.extend(f"- {message}" for message in invalid_values)
    raise RuntimeError("\n".join(message_lines))


@dataclass(frozen=True)
class Settings:
    env: str
    log_level: str
    cors_origins: tuple[str, ...]
    debug_include_error_details: bool
    db_type: str
    database_url: str
    mongo_url: str | None
    db_name: str | None
    storage_local_root: str
    s3_enable: bool
    s3_name: str
    s3_access_key: str | None
    s3_secret_key: str | None
    s3_endpoint_url: str | None
    s3_region: str
    s3_bucket_name: str | None
    s3_public_url_base: str | None
    s3_key_prefix: str
    s3_presign_ttl_seconds: int
    s3_request_timeout_seconds: int

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    validate_required_environment()

    return Settings(
        env=os.getenv("ENV", "development"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS")),
        debug_include_error_details=_flag("DEBUG_INCLUDE_ERROR_DETAILS"),
        db_type=(_env("DB_TYPE") or "sqlite").lower(),
        database_url=_env("DATABASE_URL") or DEFAULT_DATABASE_URL,
        mongo_url=_env("MONGO_URL"),
        db_name=_env("DB_NAME"),
        storage_local_root=_env("STORAGE_LOCAL_ROOT") or "files",
        s3_enable=_flag("S3_ENABLE"),
        s3_name=_env("S3_NAME") or "s3",
        s3_access_key=_env("S3_ACCESS_KEY"),
        s3_secret_key=_env("S3_SECRET_KEY"),
        s3_endpoint_url=_env("S3_ENDPOINT_URL"),
        s3_region=_env("S3_REGION") or "us-east-1",
        s3_bucket_name=_env("S3_BUCKET_NAME"),
        s3_public_url_base=_env("S3_PUBLIC_URL_BASE"),
        s3_key_prefix=(_env("S3_KEY_PREFIX") or "tiddlers").strip("/"),
        s3_presign_ttl_seconds=int(_env("S3_PRESIGN_TTL_SECONDS") or 300),
        s3_request_timeout_seconds=int(_env("S3_REQUEST_TIMEOUT_SECONDS") or 10),
    )
