"""
Connection presets.

Presets live in a YAML or JSON file with a top-level ``db_presets`` list.
Each entry has a ``name`` and a ``db_type`` (mysql when omitted) plus the
connection fields for that engine. Values may reference environment
variables with ``${VAR_NAME}``.

Example:
    db_presets:
      - name: warehouse
        host: db.internal
        username: analyst
        password: "${WAREHOUSE_PASSWORD}"
        database: sales
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError, ProfileNotFound

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SQLPEEK_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/sqlpeek/presets.yaml")
DEFAULT_DB_TYPE = "mysql"

YAML_SUFFIXES = (".yaml", ".yml")

# Environment variable pattern for ${VAR_NAME} substitution
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


# =============================================================================
# Profile Models
# =============================================================================


class ProfileBase(BaseModel):
    """Fields shared by every preset."""

    # Shared config files carry keys for other tools; ignore them
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    name: str


class MySQLProfile(ProfileBase):
    """MySQL / MariaDB server."""

    db_type: Literal["mysql"] = "mysql"
    host: str
    port: int = 3306
    user: str = Field(alias="username")
    password: str = ""
    database: str
    passthrough: bool = True


class PostgresProfile(ProfileBase):
    """PostgreSQL server."""

    db_type: Literal["postgres"]
    host: str
    port: int = 5432
    user: str = Field(alias="username")
    password: str = ""
    database: str
    schema_: str = Field(default="public", alias="schema")
    passthrough: bool = True


class SQLiteProfile(ProfileBase):
    """SQLite database file."""

    db_type: Literal["sqlite"]
    path: str


class DuckDBProfile(ProfileBase):
    """DuckDB database file, or an in-memory database."""

    db_type: Literal["duckdb"]
    path: str = ":memory:"
    read_only: bool = False


AnyProfile = Union[MySQLProfile, PostgresProfile, SQLiteProfile, DuckDBProfile]

# Map db_type to profile class
PROFILE_TYPE_MAP: Dict[str, type[ProfileBase]] = {
    "mysql": MySQLProfile,
    "postgres": PostgresProfile,
    "sqlite": SQLiteProfile,
    "duckdb": DuckDBProfile,
}


# =============================================================================
# Loading
# =============================================================================


def expand_env_vars(value: Any) -> Any:
    """
    Recursively expand ${VAR_NAME} patterns in strings.

    Raises ValueError if referenced env var doesn't exist.
    """
    if isinstance(value, str):
        matches = ENV_VAR_PATTERN.findall(value)
        result = value
        for var_name in matches:
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            result = result.replace(f"${{{var_name}}}", env_value)
        return result
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    else:
        return value


def resolve_config_path(config_path: Optional[str] = None) -> Path:
    """Explicit path, then $SQLPEEK_CONFIG, then the default location."""
    raw = config_path or os.environ.get(CONFIG_ENV_VAR)
    path = Path(raw) if raw else DEFAULT_CONFIG_PATH
    return path.expanduser()


def load_config(path: Path) -> Dict[str, Any]:
    """
    Read and parse the presets file.

    YAML for .yaml/.yml files, JSON for anything else.

    Raises:
        ConfigError: If the file is missing, unreadable, malformed or has no
            db_presets list
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e

    try:
        if path.suffix.lower() in YAML_SUFFIXES:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {path}: {e}") from e

    if data is None:
        raise ConfigError(f"Config file is empty: {path}")
    if not isinstance(data, dict) or not isinstance(data.get("db_presets"), list):
        raise ConfigError(f"Config file {path} has no 'db_presets' list")
    return data


def preset_names(config: Dict[str, Any]) -> List[str]:
    return [
        entry["name"]
        for entry in config.get("db_presets", [])
        if isinstance(entry, dict) and isinstance(entry.get("name"), str)
    ]


def find_preset(config: Dict[str, Any], preset_name: str) -> Dict[str, Any]:
    """Return the raw entry named ``preset_name``; first match wins."""
    for entry in config.get("db_presets", []):
        if isinstance(entry, dict) and entry.get("name") == preset_name:
            return entry

    available = ", ".join(preset_names(config)) or "none"
    raise ProfileNotFound(f"Preset not found: {preset_name} (available: {available})")


def format_validation_error(e: ValidationError) -> str:
    error_details = []
    for err in e.errors():
        loc = " -> ".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        error_details.append(f"{loc}: {msg}")
    return "; ".join(error_details)


def parse_profile(entry: Dict[str, Any]) -> AnyProfile:
    """
    Expand environment variables in a raw preset and validate it.

    Raises:
        ConfigError: On unset variables, unknown db_type or invalid fields
    """
    try:
        expanded = expand_env_vars(entry)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    db_type = expanded.get("db_type") or DEFAULT_DB_TYPE
    if not isinstance(db_type, str) or db_type not in PROFILE_TYPE_MAP:
        raise ConfigError(f"Unsupported db_type: {db_type!r}")

    profile_class = PROFILE_TYPE_MAP[db_type]
    try:
        return profile_class(**{**expanded, "db_type": db_type})
    except ValidationError as e:
        raise ConfigError(
            f"Preset {expanded.get('name')!r} is invalid: {format_validation_error(e)}"
        ) from e


def load_profile(preset_name: str, config_path: Optional[str] = None) -> AnyProfile:
    """Resolve a preset name to a validated connection profile."""
    path = resolve_config_path(config_path)
    logger.debug("Loading presets from %s", path)

    config = load_config(path)
    profile = parse_profile(find_preset(config, preset_name))

    logger.debug("Using %s preset %r", profile.db_type, profile.name)
    return profile
