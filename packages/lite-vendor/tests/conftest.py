# SPDX-License-Identifier: MIT
"""Pytest configuration and fixtures for lite-vendor tests."""

from __future__ import annotations

import pytest

from vendor_fixtures import FakeSources


@pytest.fixture
def sources() -> FakeSources:
    """Fake registry and git sources for offline vendoring runs."""
    return FakeSources()
