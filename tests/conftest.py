"""Shared fixtures: a scripted module that records commands instead of running them."""

import shlex
from typing import List, Optional, Tuple

import pytest

from clusteradm.audit import MemoryAuditLog
from clusteradm.exec.module import Module
from clusteradm.exec.sudo import SudoAliasRegistry
from clusteradm.task.context import Context
from clusteradm.task.store import SharedStore


class ScriptedModule(Module):
    """
    Module whose commands never leave the process.

    Rules are (substring, exit_code, stdout, stderr); the first rule whose
    substring occurs in the command line decides the result. Commands that
    match no rule succeed with empty output.
    """

    def __init__(self, host: str = "host-1", rules: Optional[List[Tuple]] = None,
                 recorder=None, sudo_aliases: Optional[SudoAliasRegistry] = None):
        super().__init__(host, None, sudo_aliases or SudoAliasRegistry(), recorder)
        self.rules = []
        for rule in rules or []:
            self.add_rule(*rule)
        self.commands: List[str] = []
        self.closed = False

    def add_rule(self, substring: str, exit_code: int = 0, stdout: str = "", stderr: str = ""):
        self.rules.append((substring, exit_code, stdout, stderr))

    def _respond(self, command: str):
        self.commands.append(command)
        for substring, exit_code, stdout, stderr in self.rules:
            if substring in command:
                return exit_code, stdout.encode(), stderr.encode()
        return 0, b"", b""

    def _run_local(self, argv, timeout_sec):
        return self._respond(shlex.join(argv))

    def _run_remote(self, script, timeout_sec):
        return self._respond(script)

    def close(self):
        self.closed = True


@pytest.fixture
def recorder():
    return MemoryAuditLog()


@pytest.fixture
def make_module(recorder):
    def _make(host: str = "host-1", rules: Optional[List[Tuple]] = None) -> ScriptedModule:
        return ScriptedModule(host, rules, recorder)
    return _make


@pytest.fixture
def module(make_module):
    return make_module()


@pytest.fixture
def store():
    return SharedStore()


@pytest.fixture
def ctx(module, store):
    return Context(module, store)
