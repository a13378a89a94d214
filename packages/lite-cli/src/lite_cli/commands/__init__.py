# SPDX-License-Identifier: MIT
"""CLI command implementations."""

from . import validate, vendor

__all__ = ["validate", "vendor"]
