"""Task: an ordered, named list of steps run against one context."""

import logging
import time
from enum import Enum
from typing import List, Optional

from ..audit import AuditStatus
from ..exceptions import TaskAbort, TaskCancelled
from .context import Context
from .step import Step


logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class Task:
    """
    Sequential step runner.

    Steps run strictly in the order they were added. The first step that
    raises stops the task; steps that already ran are not rolled back.
    """

    def __init__(self, name: str, subname: str = "", steps: Optional[List[Step]] = None):
        self.name = name
        self.subname = subname
        self.steps: List[Step] = list(steps or [])
        self.status = TaskStatus.PENDING
        self.current_step: Optional[int] = None
        self.error: Optional[TaskAbort] = None
        self.duration_ms = 0

    def __repr__(self):
        return f"<Task {self.name!r} {self.subname!r} steps={len(self.steps)} status={self.status.value}>"

    def add_step(self, step: Step) -> "Task":
        self.steps.append(step)
        return self

    def run(self, ctx: Context) -> None:
        """
        Execute every step against ctx.

        Raises:
            TaskCancelled: ctx was cancelled before a step could start
            TaskAbort: A step failed; .cause holds the original error
        """
        if self.status != TaskStatus.PENDING:
            raise RuntimeError(f"Task '{self.name}' has already run ({self.status.value})")

        self.status = TaskStatus.RUNNING
        start_time = time.time()
        logger.info(f"[{ctx.host}] {self.name}: {self.subname}" if self.subname else f"[{ctx.host}] {self.name}")
        try:
            for index, step in enumerate(self.steps):
                self.current_step = index

                if ctx.cancelled():
                    ctx.module().audit(step.describe(), AuditStatus.ABORT, ctx.host)
                    self._abort(TaskCancelled(self.name, index, step, cause=None))

                logger.debug(f"[{ctx.host}] {self.name}: step {index + 1}/{len(self.steps)} {step.describe()}")
                try:
                    step.execute(ctx)
                except Exception as e:
                    self._abort(TaskAbort(self.name, index, step, cause=e), e)
        finally:
            self.duration_ms = int((time.time() - start_time) * 1000)

        self.status = TaskStatus.COMPLETED
        logger.info(f"[{ctx.host}] {self.name}: completed in {self.duration_ms}ms")

    def _abort(self, error: TaskAbort, cause: Optional[BaseException] = None):
        self.status = TaskStatus.ABORTED
        self.error = error
        logger.error(str(error))
        raise error from cause
