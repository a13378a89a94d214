# SPDX-License-Identifier: MIT
"""Pytest configuration and fixtures for CLI tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

CONFIG_TEXT = """
default_dest = "node_modules/sdc-clients"
exclude = ["dtrace-provider"]
stubs = ["ldapjs"]

[library]
name = "sdc-clients"
repository = "https://github.com/joyent/node-sdc-clients.git"
always_exclude = ["ufds.js"]

[keep.restify]
keep = ["lib"]
exclude = ["lib/dtrace.js"]

[[patch]]
target = "node_modules/restify/lib/index.js"
original = "require('./dtrace')"
replacement = "{}"
description = "dtrace is not available"
"""


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a complete lite-vendor.toml into a temporary project."""
    path = tmp_path / "lite-vendor.toml"
    path.write_text(CONFIG_TEXT, encoding="utf-8")
    return path
