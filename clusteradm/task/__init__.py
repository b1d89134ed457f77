"""
Task model for clusteradm.
Steps, per-host contexts, tasks and the fleet-wide task set executor.
"""

from .store import SharedStore
from .context import Context
from .step import Output, Step, STEP_TYPES
from .task import Task, TaskStatus
from .executor import TaskSetExecutor, TaskSetResult, HostResult

__all__ = [
    "SharedStore",
    "Context",
    "Output",
    "Step",
    "STEP_TYPES",
    "Task",
    "TaskStatus",
    "TaskSetExecutor",
    "TaskSetResult",
    "HostResult",
]
