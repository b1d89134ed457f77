"""
Task set executor.

Runs one task per host across a fleet. Hosts run concurrently and
independently: a failing host never stops the others, and the outcome of
every host is reported.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Union

from ..audit import AuditRecorder
from ..exceptions import FleetPartialFailure, TaskAbort, TaskCancelled
from ..exec.module import ExecOptions, LocalModule, Module
from ..exec.retry import RetryPolicy
from ..exec.ssh import SshSession
from ..loader import HostConfig, Topology
from .context import Context
from .store import SharedStore
from .task import Task, TaskStatus


logger = logging.getLogger(__name__)

# Builds a fresh task for one host from that host's default exec options.
TaskFactory = Callable[[HostConfig, ExecOptions, SharedStore], Task]


@dataclass
class HostResult:
    """Outcome of one host's task."""
    host: str
    task_name: str
    status: TaskStatus
    error: Optional[BaseException] = None
    failed_step: Optional[int] = None
    duration_ms: int = 0
    attempts: int = 1

    @property
    def success(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def to_dict(self) -> Dict[str, object]:
        result: Dict[str, object] = {
            "host": self.host,
            "task": self.task_name,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
            "attempts": self.attempts,
        }
        if self.error is not None:
            result["error"] = str(self.error)
            result["failed_step"] = self.failed_step
        return result


@dataclass
class TaskSetResult:
    """Per-host results of a task set run plus the run's shared store."""
    results: List[HostResult] = field(default_factory=list)
    store: SharedStore = field(default_factory=SharedStore)

    @property
    def success(self) -> bool:
        return all(result.success for result in self.results)

    def failed(self) -> List[HostResult]:
        return [result for result in self.results if not result.success]

    def get(self, host: str) -> HostResult:
        for result in self.results:
            if result.host == host:
                return result
        raise KeyError(host)

    def raise_for_failures(self) -> None:
        failed = self.failed()
        if failed:
            raise FleetPartialFailure(failed)


class TaskSetExecutor:
    """
    Fleet dispatcher.

    Builds one Module/Context per host, asks the task factory for a fresh
    task per host and runs them on a thread pool. The run's SharedStore is
    injected into every context.
    """

    def __init__(
        self,
        topology: Topology,
        recorder: Optional[AuditRecorder] = None,
        max_workers: Optional[int] = None,
        retry_policy: Optional[RetryPolicy] = None,
        module_factory: Optional[Callable[[HostConfig], Module]] = None,
    ):
        """
        Initialize task set executor.

        Args:
            topology: Hosts and sudo aliases to dispatch against
            recorder: Audit sink shared by every host's module
            max_workers: Cap on concurrently running hosts (default: one per host)
            retry_policy: Whole-task retry policy (default: no retry)
            module_factory: Override module construction (used by tests)
        """
        self.topology = topology
        self.recorder = recorder
        self.max_workers = max_workers
        self.retry_policy = retry_policy or RetryPolicy.none()
        self.sudo_aliases = topology.sudo_registry()
        self._module_factory = module_factory or self._new_module

    def _new_module(self, host: HostConfig) -> Module:
        if host.exec_in_local:
            return LocalModule(host.name, self.sudo_aliases, self.recorder)
        ssh = SshSession(
            hostname=host.hostname,
            port=host.ssh_port,
            username=host.user,
            private_key_file=host.private_key_file,
            forward_agent=host.forward_agent,
        )
        return Module(host.name, ssh, self.sudo_aliases, self.recorder)

    def execute(
        self,
        task_factory: Union[str, TaskFactory],
        hosts: Optional[Sequence[str]] = None,
        store: Optional[SharedStore] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> TaskSetResult:
        """
        Run a task on every selected host.

        Args:
            task_factory: Registered task name or factory callable
            hosts: Host names to target (None: every host in the topology; empty: none)
            store: Shared store for this run (default: a new empty one)
            cancel_event: Set it to stop every host at its next step boundary

        Returns:
            TaskSetResult with one HostResult per host, in host order
        """
        if isinstance(task_factory, str):
            from .tasks import get_task_factory
            task_factory = get_task_factory(task_factory)

        store = store if store is not None else SharedStore()
        cancel_event = cancel_event or threading.Event()
        if hosts is None:
            targets = list(self.topology.hosts)
        else:
            targets = [self.topology.get_host(name) for name in hosts]
        if not targets:
            return TaskSetResult(results=[], store=store)

        modules = [self._module_factory(host) for host in targets]
        workers = self.max_workers or len(targets)
        logger.info(f"Dispatching to {len(targets)} host(s) with {workers} worker(s)")
        try:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="clusteradm-host") as pool:
                futures = [
                    pool.submit(self._run_host, task_factory, host, module, store, cancel_event)
                    for host, module in zip(targets, modules)
                ]
                try:
                    results = [future.result() for future in futures]
                except KeyboardInterrupt:
                    logger.warning("Interrupted; stopping hosts at their next step")
                    cancel_event.set()
                    raise
        finally:
            for module in modules:
                module.close()

        result = TaskSetResult(results=results, store=store)
        if result.success:
            logger.info(f"All {len(results)} host(s) succeeded")
        else:
            logger.error(f"{len(result.failed())} of {len(results)} host(s) failed")
        return result

    def _run_host(
        self,
        task_factory: TaskFactory,
        host: HostConfig,
        module: Module,
        store: SharedStore,
        cancel_event: threading.Event,
    ) -> HostResult:
        ctx = Context(module, store, cancel_event)
        options = self.topology.exec_options(host)
        attempt = 0
        start_time = time.time()
        while True:
            task_name = getattr(task_factory, "task_name", getattr(task_factory, "__name__", "task"))
            try:
                task = task_factory(host, options, store)
                task_name = task.name
                task.run(ctx)
                return HostResult(
                    host=host.name,
                    task_name=task.name,
                    status=TaskStatus.COMPLETED,
                    duration_ms=int((time.time() - start_time) * 1000),
                    attempts=attempt + 1,
                )
            except TaskAbort as e:
                error: BaseException = e
                failed_step: Optional[int] = e.step_index
            except Exception as e:
                logger.error(f"[{host.name}] Unexpected error in task '{task_name}': {e}", exc_info=True)
                error = e
                failed_step = None

            if not isinstance(error, TaskCancelled) and self.retry_policy.should_retry(error, attempt):
                attempt += 1
                logger.warning(f"[{host.name}] Retrying task '{task_name}' (attempt {attempt + 1})")
                self.retry_policy.wait()
                continue

            return HostResult(
                host=host.name,
                task_name=task_name,
                status=TaskStatus.ABORTED,
                error=error,
                failed_step=failed_step,
                duration_ms=int((time.time() - start_time) * 1000),
                attempts=attempt + 1,
            )
