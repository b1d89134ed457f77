"""Helpers shared by the CLI command handlers."""

import logging
from argparse import Namespace
from pathlib import Path
from typing import List, Sequence

from clusteradm.audit import AuditLog
from clusteradm.loader import Topology, TopologyLoader
from clusteradm.task.executor import HostResult


def setup_logging(args: Namespace) -> None:
    log_level = getattr(logging, args.log_level.upper())
    if args.debug:
        log_level = logging.DEBUG
    elif args.quiet:
        log_level = logging.ERROR
    elif args.verbose:
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def load_topology(args: Namespace, workspace: Path) -> Topology:
    """
    Load the topology named on the command line.

    Raises:
        TopologyValidationError: If the topology file is invalid
    """
    if args.topology:
        topology = TopologyLoader(workspace).load(Path(args.topology))
    else:
        topology = Topology.local()
    if args.sudo:
        topology.exec_with_sudo = True
    return topology


def open_audit_log(workspace: Path) -> AuditLog:
    return AuditLog.for_workspace(workspace)


def format_table(title: Sequence[str], rows: Sequence[Sequence[str]], padding: int = 2) -> str:
    """Fixed-width table with a dashed rule under the title."""
    lines: List[List[str]] = [list(title), ["-" * len(column) for column in title]]
    lines.extend([str(cell) for cell in row] for row in rows)
    widths = [max(len(line[i]) for line in lines) for i in range(len(title))]
    output = []
    for line in lines:
        cells = [cell.ljust(widths[i]) for i, cell in enumerate(line)]
        output.append((" " * padding).join(cells).rstrip())
    return "\n".join(output)


def format_host_results(results: Sequence[HostResult]) -> str:
    rows = []
    for result in results:
        error = "" if result.success else str(result.error).splitlines()[0]
        step = "" if result.failed_step is None else str(result.failed_step)
        rows.append([result.host, result.status.value.upper(), step, error])
    return format_table(["Host", "Status", "Failed Step", "Error"], rows)
