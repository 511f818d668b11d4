# src/scriptdeck/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data directory exists,
- wires the registry, supervisor and controller with their default adapters
  (package.json provider, package-manager resolver, asyncio process layer).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import CommandProvider, CommandResolver, ProcessLayer
from ..core.pubsub import PubSub
from ..core.state import AppState
from ..tasks.package_scripts import PackageScriptsProvider, make_resolver
from ..tasks.process_layer import AsyncioProcessLayer
from ..tasks.task_controller import TaskController
from ..tasks.task_registry import TaskRegistry
from ..tasks.task_supervisor import ProcessSupervisor

logger = logging.getLogger(__name__)


def create_initial_state(
    *,
    settings=None,
    provider: CommandProvider | None = None,
    process_layer: ProcessLayer | None = None,
    resolve_command: CommandResolver | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Adapters are injectable for tests; defaults are the real ones.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    settings.data_dir.mkdir(parents=True, exist_ok=True)

    pubsub = PubSub()
    registry = TaskRegistry(pubsub, max_logs=settings.max_logs)
    supervisor = ProcessSupervisor(
        registry,
        process_layer or AsyncioProcessLayer(),
        resolve_command or make_resolver(settings.package_manager),
        read_chunk_size=settings.read_chunk_size,
    )
    controller = TaskController(
        registry,
        supervisor,
        provider or PackageScriptsProvider(),
        clear_logs_on_run=settings.clear_logs_on_run,
    )

    logger.debug("State ready project=%s max_logs=%s", settings.project_dir, settings.max_logs)
    return AppState(
        settings=settings,
        pubsub=pubsub,
        registry=registry,
        supervisor=supervisor,
        controller=controller,
        project_dir=str(settings.project_dir),
    )
