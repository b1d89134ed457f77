"""
Step catalog.

A step is one declared unit of work. It builds its command lines with the
context's Shell/DockerCli, dispatches them through the context's Module and
interprets the result. The set of step types is closed (see STEP_TYPES);
composite tasks only add private steps for task-specific glue.

Some failures are expected and tolerated. Each step that tolerates one
matches the trimmed command output against its own allow-list:

- RemoveFile: output ending in "Device or resource busy" (path is mounted)
- UmountFilesystem: "not mounted" and "mountpoint not found", each behind
  its own flag

Output text is not a stable contract of these tools; the markers are
matched literally and kept in one place so they are easy to audit.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from ..exceptions import CommandFailure, StepInputError
from ..exec.module import ExecOptions
from .context import Context


logger = logging.getLogger(__name__)

ERR_NOT_MOUNTED = "not mounted"
ERR_MOUNTPOINT_NOT_FOUND = "mountpoint not found"
ERR_DEVICE_BUSY = "Device or resource busy"


class Output:
    """Single-value cell a step writes its output into.

    Created by whoever builds the task and shared with later steps (or read
    back by the caller) once the task has run.
    """

    def __init__(self, value: Optional[str] = None):
        self.value = value

    def get(self) -> str:
        if self.value is None:
            raise StepInputError("Output has not been produced yet")
        return self.value

    def __repr__(self):
        return f"Output({self.value!r})"


def trim_output(out: str) -> str:
    """Drop the single trailing newline commands print."""
    if out.endswith("\n"):
        return out[:-1]
    return out


def is_suppressed(error: CommandFailure, *, suffixes: Sequence[str] = (), substrings: Sequence[str] = ()) -> bool:
    """Whether a failure's trimmed output matches an allow-listed marker."""
    out = trim_output(error.output)
    for marker in suffixes:
        if out.endswith(marker):
            logger.debug(f"Ignoring failure of '{error.command}': output ends with '{marker}'")
            return True
    for marker in substrings:
        if marker in out:
            logger.debug(f"Ignoring failure of '{error.command}': output contains '{marker}'")
            return True
    return False


def _write_output(out: Optional[Output], text: str) -> None:
    if out is not None:
        out.value = trim_output(text)


class Step(ABC):
    """Unit of declared work; execute() runs once per task run."""

    @abstractmethod
    def execute(self, ctx: Context) -> None:
        pass

    def describe(self) -> str:
        return type(self).__name__


@dataclass
class CreateDirectory(Step):
    paths: List[str]
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        for path in self.paths:
            if not path:
                continue
            cmd = ctx.module().shell().mkdir(path)
            cmd.add_option("--parents")  # no error if existing, make parent directories as needed
            ctx.module().execute(cmd, self.exec_options)


@dataclass
class RemoveFile(Step):
    files: List[str]
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        for file in self.files:
            if not file:
                continue
            cmd = ctx.module().shell().remove(file)
            cmd.add_option("--force")      # ignore nonexistent files, never prompt
            cmd.add_option("--recursive")
            try:
                ctx.module().execute(cmd, self.exec_options)
            except CommandFailure as e:
                # the path may be a mount point
                if not is_suppressed(e, suffixes=[ERR_DEVICE_BUSY]):
                    raise


@dataclass
class CreateFilesystem(Step):
    device: str
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        cmd = ctx.module().shell().mkfs(self.device)
        # create the filesystem even if the device is not a partition
        cmd.add_option("-F")
        ctx.module().execute(cmd, self.exec_options)


@dataclass
class MountFilesystem(Step):
    source: str
    directory: str
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        cmd = ctx.module().shell().mount(self.source, self.directory)
        ctx.module().execute(cmd, self.exec_options)


@dataclass
class UmountFilesystem(Step):
    directories: List[str]
    ignore_umounted: bool = False
    ignore_not_found: bool = False
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        substrings = []
        if self.ignore_umounted:
            substrings.append(ERR_NOT_MOUNTED)
        if self.ignore_not_found:
            substrings.append(ERR_MOUNTPOINT_NOT_FOUND)

        for directory in self.directories:
            if not directory:
                continue
            cmd = ctx.module().shell().umount(directory)
            try:
                ctx.module().execute(cmd, self.exec_options)
            except CommandFailure as e:
                if not is_suppressed(e, substrings=substrings):
                    raise


@dataclass
class Fuser(Step):
    names: List[str]
    out: Optional[Output] = None
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        cmd = ctx.module().shell().fuser(*self.names)
        out = ctx.module().execute(cmd, self.exec_options)
        _write_output(self.out, out)


@dataclass
class ShowDiskFree(Step):
    # see `df --help` for the --output field list
    files: List[str]
    format: str = ""
    out: Optional[Output] = None
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        cmd = ctx.module().shell().disk_free(*self.files)
        if self.format:
            cmd.add_option("--output=%s", self.format)
        out = ctx.module().execute(cmd, self.exec_options)
        _write_output(self.out, out)


@dataclass
class ListBlockDevice(Step):
    devices: List[str]
    format: str = ""
    no_headings: bool = False
    out: Optional[Output] = None
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        cmd = ctx.module().shell().lsblk(*self.devices)
        if self.format:
            cmd.add_option("--output=%s", self.format)
        if self.no_headings:
            cmd.add_option("--noheadings")
        out = ctx.module().execute(cmd, self.exec_options)
        _write_output(self.out, out)


@dataclass
class ShellCommand(Step):
    command: str
    out: Optional[Output] = None
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        cmd = ctx.module().shell().command(self.command)
        out = ctx.module().execute(cmd, self.exec_options)
        _write_output(self.out, out)

    def describe(self) -> str:
        return f"{type(self).__name__}({self.command!r})"


@dataclass
class ModProbe(Step):
    module: str
    params: List[str] = field(default_factory=list)
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        cmd = ctx.module().shell().modprobe(self.module, *self.params)
        ctx.module().execute(cmd, self.exec_options)


@dataclass
class Volume:
    host_path: str
    container_path: str


@dataclass
class PullImage(Step):
    image: str
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        cmd = ctx.module().docker().pull(self.image)
        ctx.module().execute(cmd, self.exec_options)


@dataclass
class CreateContainer(Step):
    image: str
    command: List[str] = field(default_factory=list)
    entrypoint: str = ""
    envs: List[str] = field(default_factory=list)
    hostname: str = ""
    labels: List[str] = field(default_factory=list)
    name: str = ""
    network: str = ""
    mount: str = ""
    volumes: List[Volume] = field(default_factory=list)
    devices: List[str] = field(default_factory=list)
    security_options: List[str] = field(default_factory=list)
    linux_capabilities: List[str] = field(default_factory=list)
    ulimits: List[str] = field(default_factory=list)
    privileged: bool = False
    restart: str = ""
    out: Optional[Output] = None
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        cmd = ctx.module().docker().create(self.image, self.command)
        if self.entrypoint:
            cmd.add_option("--entrypoint=%s", self.entrypoint)
        for env in self.envs:
            cmd.add_option("--env=%s", env)
        if self.hostname:
            cmd.add_option("--hostname=%s", self.hostname)
        for label in self.labels:
            cmd.add_option("--label=%s", label)
        if self.name:
            cmd.add_option("--name=%s", self.name)
        if self.network:
            cmd.add_option("--network=%s", self.network)
        if self.mount:
            cmd.add_option("--mount=%s", self.mount)
        for volume in self.volumes:
            cmd.add_option("--volume=%s:%s", volume.host_path, volume.container_path)
        for device in self.devices:
            cmd.add_option("--device=%s", device)
        for option in self.security_options:
            cmd.add_option("--security-opt=%s", option)
        for capability in self.linux_capabilities:
            cmd.add_option("--cap-add=%s", capability)
        for ulimit in self.ulimits:
            cmd.add_option("--ulimit=%s", ulimit)
        if self.privileged:
            cmd.add_option("--privileged")
        if self.restart:
            cmd.add_option("--restart=%s", self.restart)

        out = ctx.module().execute(cmd, self.exec_options)
        _write_output(self.out, out)


@dataclass
class StartContainer(Step):
    container_id: Union[str, Output]
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        container_id = self.container_id
        if isinstance(container_id, Output):
            container_id = container_id.get()
        cmd = ctx.module().docker().start(container_id)
        ctx.module().execute(cmd, self.exec_options)


@dataclass
class Sleep(Step):
    """Wait for a fixed duration; returns early if the run is cancelled."""
    seconds: float

    def execute(self, ctx: Context) -> None:
        if self.seconds <= 0:
            return
        start = time.time()
        ctx.cancel_event().wait(self.seconds)
        logger.debug(f"[{ctx.host}] waited {time.time() - start:.1f}s of {self.seconds}s")


STEP_TYPES = (
    CreateDirectory,
    RemoveFile,
    CreateFilesystem,
    MountFilesystem,
    UmountFilesystem,
    Fuser,
    ShowDiskFree,
    ListBlockDevice,
    ShellCommand,
    ModProbe,
    PullImage,
    CreateContainer,
    StartContainer,
    Sleep,
)
