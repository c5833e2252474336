"""XDG-compliant path management for deskctl.

XDG defaults:
- Config: ~/.config/deskctl/
- State: ~/.local/state/deskctl/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "deskctl"

# System-wide launcher directory scanned on refresh
DEFAULT_APPLICATIONS_DIR = Path("/usr/share/applications")

DATABASE_FILENAME = "desktop-files.db"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    The desktop file database lives here: it persists between runs
    but can always be rebuilt by a refresh.
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_config_path() -> Path:
    """Get the default config file path.

    Returns:
        Path to ~/.config/deskctl/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_theme_path() -> Path:
    """Get the user theme override path."""
    return get_config_dir() / "theme.toml"


def get_database_path() -> Path:
    """Get the default desktop file database path.

    Returns:
        Path to ~/.local/state/deskctl/desktop-files.db.
    """
    return get_state_dir() / DATABASE_FILENAME


def ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path
