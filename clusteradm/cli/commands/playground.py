"""Playground command: run or clean a single-container cluster locally."""

import logging
import sys
import time
from argparse import Namespace
from pathlib import Path
from typing import Optional

from clusteradm.exceptions import TopologyValidationError
from clusteradm.loader import SUPPORTED_KINDS, PlaygroundConfig, Topology
from clusteradm.task.executor import TaskSetExecutor
from clusteradm.task.store import SharedStore
from clusteradm.task.tasks import CLEAN_PLAYGROUND, RUN_PLAYGROUND
from clusteradm.task.tasks.playground import KEY_PLAYGROUND

from .common import format_host_results, load_topology, open_audit_log, setup_logging


logger = logging.getLogger(__name__)


def resolve_playground_config(args: Namespace, topology: Topology) -> Optional[PlaygroundConfig]:
    """Merge --kind/--name/--image/--mount-point over the topology section."""
    base = topology.playground or PlaygroundConfig(kind="", name="", container_image="")
    kind = args.kind or base.kind
    if kind not in SUPPORTED_KINDS:
        logger.error(f"Playground kind must be one of {sorted(SUPPORTED_KINDS)}")
        return None

    name = args.name or base.name or f"playground-{kind}-{int(time.time())}"
    image = args.image or base.container_image
    if not image:
        logger.error("Playground container image is required (--image)")
        return None

    return PlaygroundConfig(
        kind=kind,
        name=name,
        container_image=image,
        mount_point=args.mount_point or base.mount_point,
    )


def run_playground(args: Namespace) -> int:
    setup_logging(args)
    workspace = Path.cwd()

    try:
        topology = load_topology(args, workspace)
    except TopologyValidationError as e:
        for error in e.errors:
            logger.error(f"Validation error: {error.message}")
        return e.exit_code

    pc = resolve_playground_config(args, topology)
    if pc is None:
        return 2

    store = SharedStore()
    store.set(KEY_PLAYGROUND, pc)
    task_name = RUN_PLAYGROUND if args.action == 'run' else CLEAN_PLAYGROUND

    # the playground lives on the controlling host only
    executor = TaskSetExecutor(topology, recorder=open_audit_log(workspace))
    try:
        result = executor.execute(task_name, hosts=[topology.hosts[0].name], store=store)
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130

    if not result.success:
        print(format_host_results(result.results), file=sys.stderr)
        return 1

    print(f"Playground '{pc.name}' ({pc.kind}): {args.action} done")
    return 0
