"""deskctl configuration and settings.

Configuration is stored in ~/.config/deskctl/config.toml. A missing
file is not an error: every setting has a default.
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Literal

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from deskctl.core.paths import DEFAULT_APPLICATIONS_DIR, get_config_path, get_database_path

BackendName = Literal["apt"]


class DeskctlConfig(BaseModel):
    """Settings for the desktop file cache.

    Attributes:
        enabled: Master switch; when False every cache operation is a no-op.
        applications_dir: Root directory scanned for launcher files.
        database: Location of the cache database (None = XDG state dir).
        backend: Package backend used to resolve file ownership.
        query_timeout_seconds: Upper bound on waiting for one backend query.
        launcher_suffix: File name suffix identifying launcher files.
    """

    model_config = ConfigDict(extra="forbid")

    enabled: Annotated[
        bool,
        Field(description="Scan desktop files and maintain the cache"),
    ] = True
    applications_dir: Annotated[
        Path,
        Field(description="Root directory of launcher files"),
    ] = DEFAULT_APPLICATIONS_DIR
    database: Annotated[
        Path | None,
        Field(description="Cache database path (None = default state dir)"),
    ] = None
    backend: Annotated[
        BackendName,
        Field(description="Package backend used for ownership queries"),
    ] = "apt"
    query_timeout_seconds: Annotated[
        float,
        Field(gt=0, le=600, description="Timeout per backend query in seconds"),
    ] = 30.0
    launcher_suffix: Annotated[
        str,
        Field(min_length=1, description="Suffix of launcher file names"),
    ] = ".desktop"

    @field_validator("applications_dir")
    @classmethod
    def validate_absolute(cls, v: Path) -> Path:
        """Require an absolute applications directory."""
        if not v.is_absolute():
            msg = f"applications_dir must be absolute, got {v}"
            raise ValueError(msg)
        return v

    @property
    def effective_database(self) -> Path:
        """Get the database path, falling back to the XDG default."""
        if self.database is not None:
            return self.database
        return get_database_path()


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path | None = None) -> DeskctlConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses default config path.

    Returns:
        Validated DeskctlConfig; defaults when the file does not exist.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the file cannot be read or doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        return DeskctlConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return DeskctlConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def save_config(config: DeskctlConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file.

    The file is written to a temporary file in the same directory and
    moved into place with os.replace().

    Args:
        config: The DeskctlConfig to save.
        path: Path to save the config. If None, uses default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = config_to_dict(config)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def config_to_dict(config: DeskctlConfig) -> dict[str, object]:
    """Convert DeskctlConfig to a TOML-serializable dictionary.

    TOML has no null, so an unset database path is omitted.
    """
    result: dict[str, object] = {
        "enabled": config.enabled,
        "applications_dir": str(config.applications_dir),
        "backend": config.backend,
        "query_timeout_seconds": config.query_timeout_seconds,
        "launcher_suffix": config.launcher_suffix,
    }
    if config.database is not None:
        result["database"] = str(config.database)
    return result
