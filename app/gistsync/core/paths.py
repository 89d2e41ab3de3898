"""XDG-compliant path management for gistsync.

This module provides standardized paths following the XDG Base Directory
Specification for configuration storage.

XDG defaults:
- Config: ~/.config/gistsync/
"""

import os
from pathlib import Path

from gistsync.core.constants import APP_NAME

GIST_CONFIG_FILENAME = "gist.dat"
CREDENTIAL_FILENAME = "credential.dat"
STORE_KEY_FILENAME = "store.key"


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
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/gistsync/ (or XDG_CONFIG_HOME/gistsync/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_gist_config_path() -> Path:
    """Get the encrypted desired-state pointer path.

    Returns:
        Path to ~/.config/gistsync/gist.dat.
    """
    return get_config_dir() / GIST_CONFIG_FILENAME


def get_credential_path() -> Path:
    """Get the encrypted credential path.

    Returns:
        Path to ~/.config/gistsync/credential.dat.
    """
    return get_config_dir() / CREDENTIAL_FILENAME


def get_store_key_path() -> Path:
    """Get the per-user store key path.

    Returns:
        Path to ~/.config/gistsync/store.key.
    """
    return get_config_dir() / STORE_KEY_FILENAME


def get_theme_path() -> Path:
    """Get the user theme override path.

    Returns:
        Path to ~/.config/gistsync/theme.toml.
    """
    return get_config_dir() / "theme.toml"


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


def ensure_config_dir() -> Path:
    """Create the configuration directory if it doesn't exist.

    Returns:
        Path to the configuration directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return ensure_dir(get_config_dir(), "config")
