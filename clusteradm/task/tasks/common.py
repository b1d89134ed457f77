"""Generic tasks that are not tied to one cluster kind."""

from dataclasses import dataclass

from ...exec.module import ExecOptions
from ...loader import HostConfig
from ..context import Context
from ..step import Output, ShellCommand, Step
from ..store import SharedStore
from ..task import Task


KEY_COMMAND = "command.text"
KEY_COMMAND_OUTPUT = "command.output"


def command_output_key(host: str) -> str:
    return f"{KEY_COMMAND_OUTPUT}.{host}"


@dataclass
class _PublishOutput(Step):
    """Copy an Output cell into the shared store."""
    out: Output
    key: str

    def execute(self, ctx: Context) -> None:
        ctx.store().set(self.key, self.out.get())


def new_run_command_task(host: HostConfig, options: ExecOptions, store: SharedStore) -> Task:
    command = store.get(KEY_COMMAND, str)
    t = Task("Run Command", f"host={host.name} command={command}")
    out = Output()

    t.add_step(ShellCommand(
        command=command,
        out=out,
        exec_options=options,
    ))
    t.add_step(_PublishOutput(
        out=out,
        key=command_output_key(host.name),
    ))
    return t
