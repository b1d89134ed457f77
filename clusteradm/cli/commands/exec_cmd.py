"""Exec command: run one shell command across the fleet."""

import logging
import sys
from argparse import Namespace
from pathlib import Path

from clusteradm.exceptions import TopologyValidationError
from clusteradm.exec.retry import RetryPolicy
from clusteradm.task.executor import TaskSetExecutor
from clusteradm.task.store import SharedStore
from clusteradm.task.tasks import RUN_COMMAND
from clusteradm.task.tasks.common import KEY_COMMAND, command_output_key

from .common import format_host_results, load_topology, open_audit_log, setup_logging


logger = logging.getLogger(__name__)


def run_exec(args: Namespace) -> int:
    setup_logging(args)
    workspace = Path.cwd()

    try:
        topology = load_topology(args, workspace)
    except TopologyValidationError as e:
        for error in e.errors:
            logger.error(f"Validation error: {error.message}")
        return e.exit_code

    hosts = args.host or topology.host_names()
    for name in hosts:
        if name not in topology.host_names():
            logger.error(f"Unknown host '{name}'")
            return 2

    store = SharedStore()
    store.set(KEY_COMMAND, args.shell_command)

    retry_policy = None
    if args.max_retries:
        retry_policy = RetryPolicy.for_tasks(args.max_retries, args.retry_delay)

    executor = TaskSetExecutor(
        topology,
        recorder=open_audit_log(workspace),
        max_workers=args.parallel,
        retry_policy=retry_policy,
    )
    try:
        result = executor.execute(RUN_COMMAND, hosts=hosts, store=store)
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130

    for host_result in result.results:
        if host_result.success:
            output = store.get(command_output_key(host_result.host), str, default="")
            print(f"[{host_result.host}]")
            if output:
                print(output)

    if not result.success:
        print(format_host_results(result.results), file=sys.stderr)
        return 1
    return 0
