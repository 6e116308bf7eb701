from __future__ import annotations

import json
import os
import stat
import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationInfo, field_validator

DEFAULT_DATA_DIR = Path.home() / ".wellness_insights"
DEFAULT_CONFIG_PATH = DEFAULT_DATA_DIR / "config.toml"
DB_FILENAME = "wellness_insights.db"
DEFAULT_DB_PATH = DEFAULT_DATA_DIR / DB_FILENAME
ENV_PREFIX = "WELLNESS_INSIGHTS_"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)
    _data_dir: Path = PrivateAttr(default=DEFAULT_DATA_DIR)
    _db_path: Path = PrivateAttr(default=DEFAULT_DB_PATH)

    window_days: int = Field(default=14, ge=1, le=365)
    recent_window_days: int = Field(default=7, ge=1, le=365)
    max_insights: int = Field(default=3, ge=0, le=3)
    history_recency_days: int = Field(default=3, ge=0, le=365)
    cache_ttl_seconds: int = Field(default=12 * 60 * 60, ge=0)
    cache_max_size: int = Field(default=25, ge=1, le=10_000)
    cache_storage_key: str = Field(default="wellness_insights", min_length=1, max_length=128)
    cleanup_interval_seconds: int = Field(default=60 * 60, ge=1)
    storage_backend: Literal["sqlite", "memory", "redis"] = "sqlite"
    redis_url: str = "redis://127.0.0.1:6379/0"

    @field_validator("recent_window_days")
    @classmethod
    def validate_recent_window(cls, value: int, info: ValidationInfo) -> int:
        main = info.data.get("window_days")
        if main is not None and value > main:
            raise ValueError("recent_window_days must not exceed window_days")
        return value

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, value: str) -> str:
        if not value.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("redis_url must use redis://, rediss:// or unix://")
        return value

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def db_path(self) -> Path:
        return self._db_path


def _env_overrides() -> dict[str, Any]:
    """``WELLNESS_INSIGHTS_<FIELD>`` variables, cast to the field's type."""
    out: dict[str, Any] = {}
    for name, field in AppConfig.model_fields.items():
        raw = os.getenv(ENV_PREFIX + name.upper())
        if raw is None:
            continue
        out[name] = int(raw) if field.annotation is int else raw.strip()
    return out


def secure_path(path: Path, mode: int) -> None:
    os.chmod(path, mode)
    if stat.S_IMODE(os.stat(path).st_mode) != mode:
        raise PermissionError(f"{path} does not keep mode {oct(mode)}")


def _refuse_symlink(path: Path, label: str) -> None:
    if path.is_symlink():
        raise ValueError(f"refusing symlinked {label}: {path}")


def default_config_toml() -> str:
    # JSON scalars are valid TOML values for every field type AppConfig has.
    return "".join(f"{name} = {json.dumps(value)}\n" for name, value in AppConfig().model_dump().items())


def prepare_data_dir(config_path: Path) -> Path:
    """Create the private data directory, seeding a default config file on first use."""
    data_dir = config_path.parent
    _refuse_symlink(data_dir, "data directory")
    data_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    secure_path(data_dir, 0o700)

    _refuse_symlink(config_path, "config file")
    if not config_path.exists():
        config_path.write_text(default_config_toml(), encoding="utf-8")
    secure_path(config_path, 0o600)
    return data_dir.resolve()


def load_config(config_path: Path | None = None) -> AppConfig:
    path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
    data_dir = prepare_data_dir(path)
    try:
        values = tomllib.loads(path.read_text(encoding="utf-8"))
        values.update(_env_overrides())
        config = AppConfig.model_validate(values)
    except ValueError as exc:
        # TOMLDecodeError and ValidationError are both ValueErrors.
        raise ValueError(f"invalid config at {path}: {exc}") from exc
    config._data_dir = data_dir
    config._db_path = data_dir / DB_FILENAME
    return config
