"""
Named task registry.

A CLI verb maps to exactly one registered task name. Each factory builds a
fresh Task for one host and documents the shared store keys it reads and
writes.
"""

from typing import Dict, List

from .common import new_run_command_task
from .fs import new_check_mount_status_task
from .playground import new_clean_playground_task, new_run_playground_task


CHECK_MOUNT_STATUS = "check_mount_status"
RUN_PLAYGROUND = "run_playground"
CLEAN_PLAYGROUND = "clean_playground"
RUN_COMMAND = "run_command"

_TASK_FACTORIES: Dict[str, object] = {
    CHECK_MOUNT_STATUS: new_check_mount_status_task,
    RUN_PLAYGROUND: new_run_playground_task,
    CLEAN_PLAYGROUND: new_clean_playground_task,
    RUN_COMMAND: new_run_command_task,
}


def register_task(name: str, factory) -> None:
    """Register (or replace) a task factory under a name."""
    _TASK_FACTORIES[name] = factory


def get_task_factory(name: str):
    """
    Look up a task factory.

    Raises:
        ValueError: If no task with that name is registered
    """
    try:
        return _TASK_FACTORIES[name]
    except KeyError:
        raise ValueError(f"Unknown task '{name}'. Known: {list_tasks()}") from None


def list_tasks() -> List[str]:
    return sorted(_TASK_FACTORIES)


__all__ = [
    "CHECK_MOUNT_STATUS",
    "RUN_PLAYGROUND",
    "CLEAN_PLAYGROUND",
    "RUN_COMMAND",
    "register_task",
    "get_task_factory",
    "list_tasks",
]
