import os
import re
from functools import lru_cache
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env early so env vars are available for YAML interpolation
load_dotenv(Path.cwd() / ".env")

# Pattern to match $VAR_NAME environment variable references
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")

CONFIG_PATH_ENV = "QUIRE_CONFIG"


def interpolate_env_vars(value):
    """Recursively replace $VAR_NAME with os.environ values."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def get_config_path() -> Path:
    """Return the app.yaml path, honouring the QUIRE_CONFIG override."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override)
    return Path.cwd() / "app.yaml"


def load_app_config() -> dict:
    """Load and parse app.yaml with environment variable interpolation."""
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(f"app.yaml not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    return interpolate_env_vars(config)


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = "sqlite+aiosqlite:///./quire.db"
    pool_size: int = 5
    pool_overflow: int = 10
    pool_timeout: int = 30
    pool_pre_ping: bool = True
    echo: bool = False
    # Create missing tables on startup (development and tests)
    create_all: bool = False


class PlatformConfig(BaseModel):
    """Hostname layout of the hosting platform."""

    # Tenant sites are served at <site-slug>.<domain>
    domain: str = "quire.site"
    # Hosts that always belong to the editor API, never to a tenant site
    app_hosts: list[str] = ["localhost", "127.0.0.1"]
    # Seconds a host -> site resolution stays cached
    host_cache_ttl: float = 30.0

    @property
    def subdomain_suffix(self) -> str:
        return f".{self.domain.lower().strip('.')}"


class CacheConfig(BaseModel):
    """Public response caching and purge fan-out."""

    max_age: int = 60
    stale_while_revalidate: int = 300
    purge_webhooks: list[str] = []
    purge_timeout: float = 5.0


class LogfireConfig(BaseModel):
    """Pydantic Logfire observability configuration."""

    enabled: bool = False
    service_name: str = "quire"
    environment: str | None = None
    sample_rate: float = 1.0
    console: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="QUIRE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    debug: bool = False
    log_level: str = "INFO"

    db: DatabaseConfig = DatabaseConfig()
    platform: PlatformConfig = PlatformConfig()
    cache: CacheConfig = CacheConfig()
    logfire: LogfireConfig = LogfireConfig()


_YAML_SECTIONS = {
    "db": DatabaseConfig,
    "platform": PlatformConfig,
    "cache": CacheConfig,
    "logfire": LogfireConfig,
}


@lru_cache
def get_settings() -> Settings:
    """Load settings from the environment and app.yaml."""
    base_settings = Settings()

    try:
        app_config = load_app_config()
    except FileNotFoundError:
        return base_settings

    updates = {}
    for key, model in _YAML_SECTIONS.items():
        if key in app_config:
            updates[key] = model(**app_config[key])

    for key in ("debug", "log_level"):
        if key in app_config:
            updates[key] = app_config[key]

    if updates:
        return base_settings.model_copy(update=updates)

    return base_settings
