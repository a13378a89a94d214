# SPDX-License-Identifier: MIT
"""Validate a vendoring configuration file."""

from __future__ import annotations

import click

from lite_vendor import VendorError

from ..main import Context, echo_error, echo_info, echo_success, echo_warning, pass_context


@click.command()
@pass_context
def validate(ctx: Context) -> None:
    """Check the configuration file and summarize it.

    \b
    Checks:
        - TOML syntax and required [library] fields
        - resolutions pin exact versions
        - keep rules and patches are well formed
    """
    try:
        config = ctx.load_config()
    except (VendorError, FileNotFoundError) as e:
        # resolutions that are not exact surface as VersionUnresolvableError
        echo_error(f"Configuration error: {e}")
        raise SystemExit(1)

    library = config.library
    echo_info(f"Library: {library.name} ({library.repository}, default ref {library.default_ref})")
    echo_info(f"API modules: {', '.join(library.api_modules)} in {library.modules_dir}/")
    if library.always_exclude:
        echo_info(f"Always excluded: {', '.join(library.always_exclude)}")
    echo_info(f"Keep rules: {len(config.keep_rules)}")
    echo_info(f"Patches: {len(config.patches)}")
    if config.stubs:
        echo_info(f"Stubs: {', '.join(config.stubs)}")

    if ctx.verbose:
        for name, rule in sorted(config.keep_rules.items()):
            echo_info(f"  keep {name}: {', '.join(rule.keep) or '(manifest + entry)'}")
            if rule.exclude:
                echo_info(f"    except: {', '.join(rule.exclude)}")
        for patch in config.patches:
            echo_info(f"  patch {patch.target}" + (f": {patch.description}" if patch.description else ""))

    targets = [patch.target for patch in config.patches]
    for target in sorted({t for t in targets if targets.count(t) > 1}):
        echo_warning(f"{target} is patched {targets.count(target)} times; patches apply in order.")

    echo_success("\nConfiguration is valid.")
