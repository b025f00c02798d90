from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import tomllib

# environment variables win over the [db] table, so secrets can stay out of config.toml
DB_ENV_OVERRIDES = {
    "host": "REPAIRSHOP_DB_HOST",
    "port": "REPAIRSHOP_DB_PORT",
    "name": "REPAIRSHOP_DB_NAME",
    "user": "REPAIRSHOP_DB_USER",
    "password": "REPAIRSHOP_DB_PASSWORD",
}


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DbConfig:
    host: str
    port: int
    name: str
    user: str
    password: str
    sslmode: str = "disable"
    lock_timeout_ms: int = 5000


@dataclass(frozen=True)
class BusinessConfig:
    order_number_prefix: str = "OS"


@dataclass(frozen=True)
class WebConfig:
    host: str = "127.0.0.1"
    port: int = 5000


@dataclass(frozen=True)
class AppConfig:
    name: str
    log_level: str
    db: DbConfig
    business: BusinessConfig
    web: WebConfig = WebConfig()


def _db_section(data: dict, environ: Mapping[str, str]) -> dict:
    db = dict(data.get("db", {}))
    for key, var in DB_ENV_OVERRIDES.items():
        if environ.get(var):
            db[key] = environ[var]
    return db


def load_config(path: str | Path, environ: Mapping[str, str] | None = None) -> AppConfig:
    """Read the TOML config file, then apply REPAIRSHOP_DB_* overrides from ``environ``."""
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {p.resolve()}")

    try:
        data = tomllib.loads(p.read_text(encoding="utf-8"))
    except Exception as e:
        raise ConfigError(f"Failed to read config TOML: {e}") from e

    env = os.environ if environ is None else environ
    try:
        app = data.get("app", {})
        db = _db_section(data, env)
        business = data.get("business", {})
        web = data.get("web", {})

        lock_timeout_ms = int(db.get("lock_timeout_ms", 5000))
        if lock_timeout_ms < 0:
            raise ValueError("lock_timeout_ms cannot be negative")
        prefix = str(business.get("order_number_prefix", "OS")).strip()
        if not prefix:
            raise ValueError("order_number_prefix cannot be empty")
        web_port = int(web.get("port", 5000))
        if not 0 < web_port < 65536:
            raise ValueError(f"web port out of range: {web_port}")

        return AppConfig(
            name=str(app.get("name", "RepairShop")),
            log_level=str(app.get("log_level", "INFO")).upper(),
            db=DbConfig(
                host=str(db["host"]),
                port=int(db.get("port", 5432)),
                name=str(db["name"]),
                user=str(db["user"]),
                password=str(db["password"]),
                sslmode=str(db.get("sslmode", "disable")),
                lock_timeout_ms=lock_timeout_ms,
            ),
            business=BusinessConfig(order_number_prefix=prefix),
            web=WebConfig(host=str(web.get("host", "127.0.0.1")), port=web_port),
        )
    except KeyError as e:
        raise ConfigError(f"Missing config key: {e}") from e
    except Exception as e:
        raise ConfigError(f"Invalid config values: {e}") from e
