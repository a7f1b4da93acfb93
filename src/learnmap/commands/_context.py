"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy client and plugin initialization and
centralized result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from learnmap.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from learnmap.config.models import LearnmapConfig
    from learnmap.config.settings import LearnmapSettings
    from learnmap.domain.models import LearningMap, Node
    from learnmap.infrastructure.generation import GenerationClient
    from learnmap.plugins.manager import PluginManager
    from learnmap.services.result import ServiceResult
    from learnmap.services.session import MapSession


class _DeferredClient:
    """Generation client resolved on the first request.

    Offline commands (layout, view, validate) never touch the network, so a
    missing API key must only fail the operations that actually generate.
    Construction errors surface as ``GenerationError`` from the request.
    """

    def __init__(self, app: AppContext) -> None:
        self._app = app

    async def request_map_generation(self, topic: str) -> LearningMap:
        return await self._app.client.request_map_generation(topic)

    async def request_node_expansion(self, node_label: str) -> list[Node]:
        return await self._app.client.request_node_expansion(node_label)


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``.  The generation client and
    the plugin manager are created lazily so ``--help`` and ``--version``
    never trigger network setup or plugin discovery.
    """

    def __init__(self, settings: LearnmapSettings) -> None:
        self.settings = settings
        self._client: GenerationClient | None = None
        self._plugins: PluginManager | None = None

        # Configure structured logging
        from learnmap.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        # Enable telemetry context var when verbose
        if settings.verbose:
            from learnmap.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def config(self) -> LearnmapConfig:
        """The section models of the merged settings."""
        from learnmap.config.models import LearnmapConfig

        return LearnmapConfig(
            layout=self.settings.layout,
            expansion=self.settings.expansion,
            colors=self.settings.colors,
            generation=self.settings.generation,
            snapshot=self.settings.snapshot,
        )

    @property
    def client(self) -> GenerationClient:
        """The configured generation client (created on first access).

        Raises:
            GenerationError: If the provider cannot be configured.
        """
        if self._client is None:
            from learnmap.infrastructure.generation import create_client

            self._client = create_client(self.settings.generation)
        return self._client

    @property
    def plugins(self) -> PluginManager:
        """The plugin manager with entry-point and local plugins loaded."""
        if self._plugins is None:
            from learnmap.plugins.manager import PluginManager

            self._plugins = PluginManager()
            self._plugins.discover_and_load(
                local_dir=self.settings.project_root / ".learnmap" / "plugins"
            )
        return self._plugins

    def new_session(self) -> MapSession:
        """A fresh graph session wired to the configured collaborators."""
        from learnmap.services.session import MapSession

        return MapSession(_DeferredClient(self), config=self.config, plugins=self.plugins)

    def autosave(self, learning_map: LearningMap, topic: str | None = None) -> Path | None:
        """Persist *learning_map* for ``explore --resume`` when auto-save is on."""
        if not self.settings.snapshot.autosave:
            return None
        from learnmap.infrastructure.snapshot import save_autosave

        path = self.settings.autosave_file
        save_autosave(path, learning_map, topic)
        return path

    def emit(self, result: ServiceResult, *, exit_on_error: bool = True) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1 unless
          *exit_on_error* is False (interactive sessions keep running).
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            if exit_on_error:
                raise SystemExit(1)
