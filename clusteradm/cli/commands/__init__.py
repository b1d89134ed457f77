"""CLI command handlers."""

from .audit import run_audit
from .check import run_check
from .exec_cmd import run_exec
from .playground import run_playground

__all__ = ['run_audit', 'run_check', 'run_exec', 'run_playground']
