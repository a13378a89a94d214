# SPDX-License-Identifier: MIT
"""Locating and loading the vendoring configuration file."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from lite_vendor import DEFAULT_CONFIG_FILENAME, VendorConfig, VendorConfigError


def find_config_file(start_dir: Optional[str | Path] = None) -> Path:
    """Find the nearest configuration file, searching upwards.

    Args:
        start_dir: Directory to start searching from (defaults to cwd)

    Returns:
        Path to the configuration file

    Raises:
        VendorConfigError: If no configuration file is found
    """
    current = Path(start_dir) if start_dir else Path.cwd()
    current = current.resolve()

    while True:
        candidate = current / DEFAULT_CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if current == current.parent:
            break
        current = current.parent

    raise VendorConfigError(f"Could not find {DEFAULT_CONFIG_FILENAME} (use --config to specify one)")


def load_config(config_path: Optional[str | Path] = None) -> VendorConfig:
    """Load the vendoring configuration.

    Args:
        config_path: Configuration file (defaults to the nearest one)

    Raises:
        VendorConfigError: If the configuration cannot be found or is invalid
        FileNotFoundError: If an explicit configuration file does not exist
    """
    path = Path(config_path) if config_path else find_config_file()
    return VendorConfig.from_toml(path)
