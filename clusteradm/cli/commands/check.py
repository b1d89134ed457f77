"""Check command: report the mount status of a filesystem mount point."""

import logging
import sys
from argparse import Namespace
from pathlib import Path

from clusteradm.exceptions import TopologyValidationError
from clusteradm.task.executor import TaskSetExecutor
from clusteradm.task.store import SharedStore
from clusteradm.task.tasks import CHECK_MOUNT_STATUS
from clusteradm.task.tasks.fs import KEY_MOUNT_POINT, KEY_MOUNT_STATUS, MountStatus

from .common import format_host_results, load_topology, open_audit_log, setup_logging


logger = logging.getLogger(__name__)


def normalize_mount_point(mount_point: str) -> str:
    if len(mount_point) > 1 and mount_point.endswith("/"):
        return mount_point[:-1]
    return mount_point


def run_check(args: Namespace) -> int:
    setup_logging(args)
    workspace = Path.cwd()

    try:
        topology = load_topology(args, workspace)
    except TopologyValidationError as e:
        for error in e.errors:
            logger.error(f"Validation error: {error.message}")
        return e.exit_code

    host = args.host or topology.hosts[0].name
    if host not in topology.host_names():
        logger.error(f"Unknown host '{host}'")
        return 2

    store = SharedStore()
    store.set(KEY_MOUNT_POINT, normalize_mount_point(args.mount_point))

    executor = TaskSetExecutor(topology, recorder=open_audit_log(workspace))
    try:
        result = executor.execute(CHECK_MOUNT_STATUS, hosts=[host], store=store)
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130

    if not result.success:
        print(format_host_results(result.results), file=sys.stderr)
        return 1

    status = store.get(KEY_MOUNT_STATUS, MountStatus)
    print(f"Mount Point : {status.mount_point}")
    print(f"Container Id: {status.container_id}")
    print(f"Mount Status: {status.status}")
    return 0
