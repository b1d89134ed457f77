"""Audit command: list recorded commands."""

from argparse import Namespace
from pathlib import Path
from typing import Sequence

from clusteradm.audit import AuditLogEntry, AuditStatus

from .common import format_table, open_audit_log, setup_logging


RESULT_SUCCESS = "SUCCESS"
RESULT_FAIL = "FAIL"
RESULT_ABORT = "ABORT"

_RESULT_LABELS = {
    AuditStatus.SUCCESS: RESULT_SUCCESS,
    AuditStatus.FAIL: RESULT_FAIL,
    AuditStatus.ABORT: RESULT_ABORT,
}


def format_audit_logs(entries: Sequence[AuditLogEntry]) -> str:
    rows = []
    for entry in entries:
        rows.append([
            str(entry.id),
            _RESULT_LABELS.get(entry.status, RESULT_ABORT),
            entry.execute_time.strftime("%Y-%m-%d %H:%M:%S"),
            entry.host or "",
            entry.command,
        ])
    return format_table(["Id", "Result", "Execute Time", "Host", "Command"], rows)


def run_audit(args: Namespace) -> int:
    setup_logging(args)
    entries = open_audit_log(Path.cwd()).entries()
    if args.tail > 0:
        entries = entries[-args.tail:]
    print(format_audit_logs(entries))
    return 0
