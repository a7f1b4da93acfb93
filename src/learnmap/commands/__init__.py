"""Subcommand modules for learnmap.

Provides register_commands() which uses deferred imports to keep
``learnmap --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the ``map`` group and the standalone commands on the root group."""
    # --- Groups ---
    from learnmap.commands.map_cmd import map_group

    cli.add_command(map_group)

    # --- Standalone commands ---
    from learnmap.commands.explore import explore
    from learnmap.commands.generate import generate

    cli.add_command(generate)
    cli.add_command(explore)
