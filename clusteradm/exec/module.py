"""
Execution module.

Runs a built CommandLine for one host: as a local subprocess, or over the
host's SSH session, optionally prefixed with a sudo alias. Every invocation
is audited, whether it succeeds or not.
"""

import logging
import shlex
import subprocess
import time
from dataclasses import dataclass, replace as dataclass_replace
from typing import List, Optional

from ..audit import AuditRecorder, AuditStatus
from ..exceptions import CommandFailure, TransportError
from .shell import CommandLine, DockerCli, Shell
from .ssh import TIMEOUT_EXIT_CODE, SshSession
from .sudo import DEFAULT_SUDO_ALIAS, SudoAliasRegistry


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecOptions:
    """
    Where and how a step's commands run.

    Attributes:
        exec_with_sudo: Prefix commands with the sudo alias
        exec_in_local: Run on the controlling host instead of over SSH
        exec_sudo_alias: Name of the sudo alias to resolve
        timeout_sec: Per-command timeout (None waits forever)
    """
    exec_with_sudo: bool = False
    exec_in_local: bool = False
    exec_sudo_alias: str = DEFAULT_SUDO_ALIAS
    timeout_sec: Optional[int] = None

    def replace(self, **changes) -> "ExecOptions":
        return dataclass_replace(self, **changes)


def decode_output(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode('utf-8', errors='replace')


class Module:
    """
    Command dispatcher bound to one host.

    The SSH session is optional; a module without one can only run commands
    locally.
    """

    def __init__(
        self,
        host: str,
        ssh: Optional[SshSession] = None,
        sudo_aliases: Optional[SudoAliasRegistry] = None,
        recorder: Optional[AuditRecorder] = None,
    ):
        self.host = host
        self.ssh = ssh
        self.sudo_aliases = sudo_aliases or SudoAliasRegistry()
        self.recorder = recorder
        self._shell = Shell()
        self._docker = DockerCli()

    def __repr__(self):
        return f"<Module host={self.host} ssh={self.ssh!r}>"

    def shell(self) -> Shell:
        return self._shell

    def docker(self) -> DockerCli:
        return self._docker

    def execute(self, command: CommandLine, options: ExecOptions) -> str:
        """
        Execute a command.

        Returns:
            Captured stdout

        Raises:
            CommandFailure: Non-zero exit; carries combined stdout+stderr
            TransportError: The command could not be delivered
            UnknownSudoAlias: options name an alias that is not registered
        """
        prefix: List[str] = []
        if options.exec_with_sudo:
            prefix = self.sudo_aliases.resolve(options.exec_sudo_alias)

        target = "local" if options.exec_in_local else self.host
        audit_host = "localhost" if options.exec_in_local else self.host
        if prefix and command.raw is not None:
            # escalate the whole script, not only its first simple command
            rendered = shlex.join(prefix + command.argv())
        else:
            rendered = " ".join(prefix + [command.render()])

        logger.debug(f"[{target}] {rendered}")
        start_time = time.time()
        try:
            if options.exec_in_local:
                exit_code, stdout, stderr = self._run_local(prefix + command.argv(), options.timeout_sec)
            else:
                exit_code, stdout, stderr = self._run_remote(rendered, options.timeout_sec)
        except Exception:
            self.audit(rendered, AuditStatus.FAIL, audit_host)
            raise
        duration_ms = int((time.time() - start_time) * 1000)

        out = decode_output(stdout)
        if exit_code != 0:
            self.audit(rendered, AuditStatus.FAIL, audit_host)
            logger.debug(f"[{target}] exit {exit_code} after {duration_ms}ms: {rendered}")
            raise CommandFailure(rendered, exit_code, out + decode_output(stderr), host=self.host)

        self.audit(rendered, AuditStatus.SUCCESS, audit_host)
        return out

    def _run_local(self, argv: List[str], timeout_sec: Optional[int]):
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                timeout=timeout_sec,
            )
        except subprocess.TimeoutExpired as e:
            stderr = (e.stderr or b"") + f"Command timed out after {timeout_sec} seconds".encode()
            return TIMEOUT_EXIT_CODE, e.stdout or b"", stderr
        except OSError as e:
            raise TransportError(f"Failed to spawn {argv[0]}: {e}", self.host)
        return result.returncode, result.stdout, result.stderr

    def _run_remote(self, script: str, timeout_sec: Optional[int]):
        if self.ssh is None:
            raise TransportError(f"No SSH session configured for host '{self.host}'", self.host)
        return self.ssh.run(script, timeout_sec=timeout_sec)

    def audit(self, command: str, status: AuditStatus, host: str) -> None:
        if self.recorder is not None:
            self.recorder.record(command, status, host)

    def close(self) -> None:
        if self.ssh is not None:
            self.ssh.close()


class LocalModule(Module):
    """Module for the controlling host; it has no SSH session."""

    def __init__(
        self,
        host: str = "localhost",
        sudo_aliases: Optional[SudoAliasRegistry] = None,
        recorder: Optional[AuditRecorder] = None,
    ):
        super().__init__(host, None, sudo_aliases, recorder)
