# SPDX-License-Identifier: MIT
"""CLI entry point for the lite command."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click

from lite_vendor import VendorConfig, VendorConfigError, VendorError

from .config import load_config


class Context:
    """State shared by the lite commands: global options and the loaded config."""

    def __init__(self) -> None:
        self.config: Optional[VendorConfig] = None
        self.verbose: bool = False
        self.config_path: Optional[Path] = None

    def load_config(self) -> VendorConfig:
        """Load the vendoring configuration once per invocation."""
        if self.config is None:
            self.config = load_config(self.config_path)
        return self.config


pass_context = click.make_pass_decorator(Context, ensure=True)


def echo_error(message: str) -> None:
    """Report a failure on stderr."""
    click.secho(f"Error: {message}", fg="red", err=True)


def echo_success(message: str) -> None:
    """Report a completed run."""
    click.secho(message, fg="green")


def echo_info(message: str) -> None:
    """Print a progress or summary line."""
    click.echo(message)


def echo_warning(message: str) -> None:
    """Report a non-fatal problem on stderr."""
    click.secho(f"Warning: {message}", fg="yellow", err=True)


def format_vendor_error(error: VendorError) -> str:
    """Describe a vendoring failure with the step and subject that caused it."""
    subject = []
    if error.package:
        subject.append(f"package {error.package}")
    if error.path:
        subject.append(f"file {error.path}")
    where = f" ({', '.join(subject)})" if subject else ""
    return f"[{error.step}]{where} {error.message}"


@click.group()
@click.version_option(package_name="lite-vendor-tools")
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose output.",
)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Configuration file (defaults to the nearest lite-vendor.toml).",
)
@pass_context
def cli(ctx: Context, verbose: bool, config_path: Optional[Path]) -> None:
    """Selective vendoring tool for npm libraries.

    Builds a light copy of a library with only the selected API modules and
    the flattened, pruned, patched runtime dependencies they require.

    \b
    Examples:
        lite vendor
        lite vendor master node_modules/sdc-clients imgapi.js amon.js
        lite validate
    """
    ctx.verbose = verbose
    ctx.config_path = config_path


# Commands import the helpers above, so they are registered last
from .commands import validate, vendor

cli.add_command(vendor.vendor)
cli.add_command(validate.validate)


def main() -> None:
    """Console script entry point for ``lite``."""
    try:
        cli()
    except VendorConfigError as e:
        echo_error(f"Configuration error: {e}")
        sys.exit(1)
    except VendorError as e:
        echo_error(format_vendor_error(e))
        sys.exit(1)
    except FileNotFoundError as e:
        echo_error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
