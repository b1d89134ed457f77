"""clusteradm exceptions."""

from typing import Any, List, Optional, Sequence
from dataclasses import dataclass


class ClusterAdmError(Exception):
    """Base class for every error raised by clusteradm."""


class CommandFailure(ClusterAdmError):
    """A dispatched command exited abnormally.

    The combined output is kept so steps can inspect it and decide
    whether the failure is one they tolerate.
    """

    def __init__(self, command: str, exit_code: int, output: str = "", host: Optional[str] = None):
        self.command = command
        self.exit_code = exit_code
        self.output = output
        self.host = host
        message = f"Command failed with exit code {exit_code}: {command}"
        if output:
            message += f"\n{output.rstrip()}"
        super().__init__(message)


class TransportError(ClusterAdmError):
    """The command could not be delivered to its target (SSH or spawn failure)."""

    def __init__(self, message: str, host: Optional[str] = None):
        self.host = host
        super().__init__(message)


class UnknownSudoAlias(ClusterAdmError):
    """Raised when an execution option names a sudo alias nobody registered."""

    def __init__(self, alias: str, known: Sequence[str] = ()):
        self.alias = alias
        self.known = list(known)
        super().__init__(f"Unknown sudo alias '{alias}'. Known: {sorted(self.known)}")


class StepInputError(ClusterAdmError):
    """A step input that an earlier step should have produced is missing."""


class TaskAbort(ClusterAdmError):
    """A task stopped at a step; steps before it are not undone."""

    def __init__(self, task_name: str, step_index: int, step: Any = None, cause: Optional[BaseException] = None):
        self.task_name = task_name
        self.step_index = step_index
        self.step = step
        self.cause = cause
        step_label = type(step).__name__ if step is not None else "?"
        super().__init__(f"Task '{task_name}' aborted at step {step_index} ({step_label}): {cause}")


class TaskCancelled(TaskAbort):
    """The task was cancelled before it could run the step at step_index."""

    def __init__(self, task_name: str, step_index: int, step: Any = None, cause: Optional[BaseException] = None):
        super().__init__(task_name, step_index, step, cause)
        self.args = (f"Task '{task_name}' cancelled before step {step_index}",)


class FleetPartialFailure(ClusterAdmError):
    """One or more hosts in a task set failed while the rest may have succeeded."""

    def __init__(self, results: List[Any]):
        self.results = results
        lines = []
        for result in results:
            lines.append(f"{result.host}: step {result.failed_step}: {result.error}")
        super().__init__(f"{len(results)} host(s) failed:\n" + "\n".join(lines))


class StoreKeyError(ClusterAdmError, KeyError):
    """Raised when a shared store key is read before anyone wrote it."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Key '{key}' not found in shared store")

    def __str__(self) -> str:
        return self.args[0]


class StoreTypeError(ClusterAdmError, TypeError):
    """Raised when a stored value does not have the type the reader expects."""

    def __init__(self, key: str, expected: type, actual: type):
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Key '{key}' holds {actual.__name__}, expected {expected.__name__}"
        )


@dataclass
class ValidationError:
    """Single validation error."""
    message: str
    path: str = ""
    exit_code: int = 2


class TopologyValidationError(ClusterAdmError):
    """Raised when topology validation fails.

    This exception is raised by the loader when validation errors occur,
    allowing the CLI to catch it and map to appropriate exit codes.
    """

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        self.exit_code = 2

        messages = []
        for error in errors:
            if error.path:
                messages.append(f"Validation error at {error.path}: {error.message}")
            else:
                messages.append(f"Validation error: {error.message}")

        super().__init__("\n".join(messages))
