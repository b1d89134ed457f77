"""
Execution layer for clusteradm.
Builds command lines and dispatches them locally or over SSH.
"""

from .shell import CommandLine, Shell, DockerCli
from .sudo import SudoAlias, SudoAliasRegistry, DEFAULT_SUDO_ALIAS
from .ssh import SshSession
from .module import ExecOptions, Module, LocalModule
from .retry import RetryPolicy

__all__ = [
    "CommandLine",
    "Shell",
    "DockerCli",
    "SudoAlias",
    "SudoAliasRegistry",
    "DEFAULT_SUDO_ALIAS",
    "SshSession",
    "ExecOptions",
    "Module",
    "LocalModule",
    "RetryPolicy",
]
