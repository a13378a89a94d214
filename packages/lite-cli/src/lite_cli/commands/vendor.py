# SPDX-License-Identifier: MIT
"""Build a light vendor tree for the configured library."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from lite_vendor import (
    VendorError,
    vendor_library,
    write_vendor_record,
)

from ..main import Context, echo_error, echo_info, echo_success, format_vendor_error, pass_context


@click.command()
@click.argument("ref", required=False)
@click.argument("dest", required=False, type=click.Path(file_okay=False, path_type=Path))
@click.argument("modules", nargs=-1)
@click.option(
    "--clean/--no-clean",
    default=True,
    help="Remove an existing destination before vendoring.",
)
@click.option(
    "--record",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write a JSON record of the vendored packages to this file.",
)
@pass_context
def vendor(
    ctx: Context,
    ref: Optional[str],
    dest: Optional[Path],
    modules: tuple[str, ...],
    clean: bool,
    record: Optional[Path],
) -> None:
    """Vendor the library at REF into DEST, keeping only MODULES.

    REF defaults to the configured default ref, DEST to the configured
    destination, and MODULES to every API module of the library.
    Always-excluded modules are never kept.

    \b
    Examples:
        lite vendor
        lite vendor master node_modules/sdc-clients
        lite vendor 1a2b3c4 build/sdc-clients imgapi.js amon.js
    """
    try:
        config = ctx.load_config()
    except (VendorError, FileNotFoundError) as e:
        echo_error(f"Configuration error: {e}")
        raise SystemExit(1)

    dest_dir = dest or Path(config.default_dest)
    echo_info(f"Vendoring {config.library.name} at {ref or config.library.default_ref} into {dest_dir}")
    if modules:
        echo_info(f"Modules: {', '.join(modules)}")

    try:
        result = vendor_library(
            config,
            ref=ref,
            dest_dir=dest_dir,
            modules=list(modules),
            clean=clean,
            report=echo_info if ctx.verbose else None,
        )
    except VendorError as e:
        echo_error(format_vendor_error(e))
        echo_error(f"Vendoring failed; discard {dest_dir} and re-run.")
        raise SystemExit(1)

    if record is not None:
        write_vendor_record(result, record)
        echo_info(f"Record written to {record}")

    if ctx.verbose:
        for pkg in result.packages:
            echo_info(f"  {pkg.name}@{pkg.version} ({pkg.source_kind})")

    echo_success(
        f"Vendored {result.library} with {len(result.selected_modules)} module(s), "
        f"{len(result.packages)} dependencies, {len(result.patches_applied)} patch(es)."
    )
