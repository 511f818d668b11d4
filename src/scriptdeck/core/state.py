# src/scriptdeck/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.task_controller import TaskController
from ..tasks.task_registry import TaskRegistry
from ..tasks.task_supervisor import ProcessSupervisor
from .pubsub import PubSub


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    pubsub: PubSub
    registry: TaskRegistry
    supervisor: ProcessSupervisor
    controller: TaskController

    # The project the console is looking at (switched with /cd).
    project_dir: str
