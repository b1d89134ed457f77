"""Playground tasks: run a single-container cluster on the controlling host."""

from dataclasses import dataclass, field
from typing import List

from ...exceptions import CommandFailure
from ...exec.module import ExecOptions
from ...loader import KIND_CURVEBS, KIND_CURVEFS, HostConfig, PlaygroundConfig
from ..context import Context
from ..step import (
    CreateContainer, ModProbe, Output, PullImage, RemoveFile, Sleep,
    StartContainer, Step, UmountFilesystem, Volume,
)
from ..store import SharedStore
from ..task import Task


KEY_PLAYGROUND = "playground.config"

FORMAT_MOUNT_OPTION = "type=bind,source=%s,target=%s,bind-propagation=rshared"
PLAYGROUND_CLIENT_MOUNT = "/curvefs/client/mnt"
PLAYGROUND_WAIT_SEC = 10
ERR_NO_SUCH_CONTAINER = "No such container"


def get_attach_mount(kind: str, mount_point: str) -> str:
    if kind == KIND_CURVEBS:
        return ""
    return FORMAT_MOUNT_OPTION % (mount_point, PLAYGROUND_CLIENT_MOUNT)


def get_mount_volumes(kind: str) -> List[Volume]:
    if kind == KIND_CURVEFS:
        return []
    return [
        Volume(host_path="/dev", container_path="/dev"),
        Volume(host_path="/lib/modules", container_path="/lib/modules"),
    ]


@dataclass
class _RemoveContainer(Step):
    name: str
    exec_options: ExecOptions = field(default_factory=ExecOptions)

    def execute(self, ctx: Context) -> None:
        cmd = ctx.module().docker().remove(self.name)
        cmd.add_option("--force")
        try:
            ctx.module().execute(cmd, self.exec_options)
        except CommandFailure as e:
            if ERR_NO_SUCH_CONTAINER not in e.output:
                raise


def new_run_playground_task(host: HostConfig, options: ExecOptions, store: SharedStore) -> Task:
    pc = store.get(KEY_PLAYGROUND, PlaygroundConfig)
    subname = f"kind={pc.kind} name={pc.name} image={pc.container_image}"
    t = Task("Run Playground", subname)
    container_id = Output()

    # the playground always runs on the controlling host
    options = options.replace(exec_in_local=True)

    t.add_step(ModProbe(
        module="nbd",
        params=["nbds_max=64"],
        exec_options=options,
    ))
    t.add_step(PullImage(
        image=pc.container_image,
        exec_options=options,
    ))
    t.add_step(CreateContainer(
        image=pc.container_image,
        envs=["LD_PRELOAD=/usr/local/lib/libjemalloc.so"],
        name=pc.name,
        network="bridge",
        mount=get_attach_mount(pc.kind, pc.mount_point),
        volumes=get_mount_volumes(pc.kind),
        devices=["/dev/fuse"],
        security_options=["apparmor:unconfined"],
        linux_capabilities=["SYS_ADMIN"],
        ulimits=["core=-1"],
        privileged=True,
        out=container_id,
        exec_options=options,
    ))
    t.add_step(StartContainer(
        container_id=container_id,
        exec_options=options,
    ))
    t.add_step(Sleep(seconds=PLAYGROUND_WAIT_SEC))
    return t


def new_clean_playground_task(host: HostConfig, options: ExecOptions, store: SharedStore) -> Task:
    pc = store.get(KEY_PLAYGROUND, PlaygroundConfig)
    t = Task("Clean Playground", f"kind={pc.kind} name={pc.name}")
    options = options.replace(exec_in_local=True)

    t.add_step(_RemoveContainer(
        name=pc.name,
        exec_options=options,
    ))
    if pc.mount_point:
        t.add_step(UmountFilesystem(
            directories=[pc.mount_point],
            ignore_umounted=True,
            ignore_not_found=True,
            exec_options=options,
        ))
        t.add_step(RemoveFile(
            files=[pc.mount_point],
            exec_options=options,
        ))
    return t
