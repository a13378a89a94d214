# SPDX-License-Identifier: MIT
"""Command-line interface for lite-vendor."""

__version__ = "0.1.0"
