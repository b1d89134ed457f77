"""
Retry policy for whole tasks.

Steps are never retried inside a task. When a host's task aborts on a
retryable command failure, the task set executor may build a fresh task for
that host and run it again from the first step.
"""

import time
from dataclasses import dataclass
from typing import Optional, Set

from ..exceptions import CommandFailure, TaskAbort, TaskCancelled


@dataclass
class RetryPolicy:
    """
    Configuration for task retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts (0 = no retries)
        delay_ms: Delay between retries in milliseconds
        retryable_codes: Set of exit codes that trigger retries
    """
    max_retries: int = 0
    delay_ms: int = 1000
    retryable_codes: Optional[Set[int]] = None

    def __post_init__(self):
        if self.retryable_codes is None:
            self.retryable_codes = set()

    @classmethod
    def none(cls) -> 'RetryPolicy':
        return cls(max_retries=0)

    @classmethod
    def for_tasks(cls, max_retries: int = 1, delay_ms: int = 1000) -> 'RetryPolicy':
        """Retry on generic failure (1) and timeout (124)."""
        return cls(
            max_retries=max_retries,
            delay_ms=delay_ms,
            retryable_codes={1, 124}
        )

    def should_retry(self, error: Optional[BaseException], attempt: int) -> bool:
        """
        Determine if a retry should be attempted.

        Args:
            error: Error that ended the last attempt
            attempt: Current attempt number (0-based)
        """
        if attempt >= self.max_retries:
            return False
        if isinstance(error, TaskCancelled):
            return False

        cause = error.cause if isinstance(error, TaskAbort) else error
        if not isinstance(cause, CommandFailure):
            return False
        return cause.exit_code in (self.retryable_codes or set())

    def wait(self):
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000.0)
