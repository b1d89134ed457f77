"""Filesystem client tasks."""

import hashlib
import logging
from dataclasses import dataclass, field

from ...exec.module import ExecOptions
from ...loader import HostConfig
from ..context import Context
from ..step import Output, Step, trim_output
from ..store import SharedStore
from ..task import Task


logger = logging.getLogger(__name__)

KEY_MOUNT_POINT = "fs.mount_point"
KEY_MOUNT_STATUS = "fs.mount_status"

STATUS_MOUNTED = "mounted"
STATUS_UNMOUNTED = "unmounted"
STATUS_ABNORMAL = "abnormal"

CONTAINER_NAME_PREFIX = "curvefs-filesystem-"


@dataclass
class MountStatus:
    mount_point: str
    container_id: str
    status: str


def mount_container_name(mount_point: str) -> str:
    """Name of the client container serving a mount point."""
    digest = hashlib.md5(mount_point.encode('utf-8')).hexdigest()
    return CONTAINER_NAME_PREFIX + digest


@dataclass
class _ListMountContainer(Step):
    mount_point: str
    out: Output
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        cmd = ctx.module().docker().list_containers()
        cmd.add_option("--all")
        cmd.add_option("--quiet")
        cmd.add_option("--filter=name=^%s$", mount_container_name(self.mount_point))
        out = ctx.module().execute(cmd, self.exec_options)
        # docker prints one id per line; the name filter is exact
        lines = trim_output(out).splitlines()
        self.out.value = lines[0].strip() if lines else ""


@dataclass
class _InspectContainerState(Step):
    container_id: Output
    out: Output
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        container_id = self.container_id.get()
        if not container_id:
            self.out.value = ""
            return
        cmd = ctx.module().docker().inspect(container_id)
        cmd.add_option("--format={{.State.Status}}")
        self.out.value = trim_output(ctx.module().execute(cmd, self.exec_options)).strip()


@dataclass
class _PublishMountStatus(Step):
    mount_point: str
    container_id: Output
    state: Output

    def execute(self, ctx: Context) -> None:
        container_id = self.container_id.get()
        if not container_id:
            status = STATUS_UNMOUNTED
        elif self.state.value == "running":
            status = STATUS_MOUNTED
        else:
            status = STATUS_ABNORMAL
        logger.debug(f"[{ctx.host}] {self.mount_point}: {status} (container '{container_id}')")
        ctx.store().set(KEY_MOUNT_STATUS, MountStatus(
            mount_point=self.mount_point,
            container_id=container_id,
            status=status,
        ))


def new_check_mount_status_task(host: HostConfig, options: ExecOptions, store: SharedStore) -> Task:
    mount_point = store.get(KEY_MOUNT_POINT, str)
    t = Task("Check Mount Status", f"host={host.name} mountPoint={mount_point}")
    container_id = Output()
    state = Output()

    t.add_step(_ListMountContainer(
        mount_point=mount_point,
        out=container_id,
        exec_options=options,
    ))
    t.add_step(_InspectContainerState(
        container_id=container_id,
        out=state,
        exec_options=options,
    ))
    t.add_step(_PublishMountStatus(
        mount_point=mount_point,
        container_id=container_id,
        state=state,
    ))
    return t
