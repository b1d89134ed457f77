"""
Command line builders.

Turns an intent ("create directory", "pull image") into a program plus an
ordered option/argument list. Nothing here knows where the command will run;
dispatch is the job of clusteradm.exec.module.
"""

import shlex
from typing import List, Optional, Sequence


class CommandLine:
    """A built command: program, options, then positional arguments."""

    def __init__(self, program: Sequence[str], args: Sequence[str] = (), raw: Optional[str] = None):
        self.program = list(program)
        self.options: List[str] = []
        self.args = list(args)
        # Arbitrary shell text, kept verbatim instead of being quoted.
        self.raw = raw

    def add_option(self, option: str, *values) -> "CommandLine":
        """Append an option; printf-style values are interpolated into it."""
        if values:
            option = option % values
        self.options.append(option)
        return self

    def argv(self) -> List[str]:
        """Argument vector for a local subprocess."""
        if self.raw is not None:
            return ["bash", "-c", self.render()]
        return self.program + self.options + self.args

    def render(self) -> str:
        """Shell-quoted command line for a remote shell or an audit record."""
        if self.raw is not None:
            parts = [self.raw]
            parts.extend(shlex.quote(option) for option in self.options)
            return " ".join(parts)
        return shlex.join(self.program + self.options + self.args)

    def __repr__(self):
        return f"<CommandLine {self.render()!r}>"


class Shell:
    """Constructors for the coreutils/util-linux operations the steps use."""

    def mkdir(self, *paths: str) -> CommandLine:
        return CommandLine(["mkdir"], paths)

    def remove(self, *files: str) -> CommandLine:
        return CommandLine(["rm"], files)

    def mkfs(self, device: str) -> CommandLine:
        return CommandLine(["mkfs.ext4"], [device])

    def mount(self, source: str, directory: str) -> CommandLine:
        return CommandLine(["mount"], [source, directory])

    def umount(self, directory: str) -> CommandLine:
        return CommandLine(["umount"], [directory])

    def fuser(self, *names: str) -> CommandLine:
        return CommandLine(["fuser"], names)

    def disk_free(self, *files: str) -> CommandLine:
        return CommandLine(["df"], files)

    def lsblk(self, *devices: str) -> CommandLine:
        return CommandLine(["lsblk"], devices)

    def modprobe(self, module: str, *params: str) -> CommandLine:
        return CommandLine(["modprobe"], (module,) + params)

    def command(self, text: str) -> CommandLine:
        return CommandLine([], raw=text)


class DockerCli:
    """Constructors for the docker sub-commands used to manage containers."""

    def __init__(self, binary: str = "docker"):
        self.binary = binary

    def pull(self, image: str) -> CommandLine:
        return CommandLine([self.binary, "pull"], [image])

    def create(self, image: str, command: Sequence[str] = ()) -> CommandLine:
        return CommandLine([self.binary, "create"], (image,) + tuple(command))

    def start(self, *container_ids: str) -> CommandLine:
        return CommandLine([self.binary, "start"], container_ids)

    def stop(self, *container_ids: str) -> CommandLine:
        return CommandLine([self.binary, "stop"], container_ids)

    def remove(self, *container_ids: str) -> CommandLine:
        return CommandLine([self.binary, "rm"], container_ids)

    def list_containers(self) -> CommandLine:
        return CommandLine([self.binary, "ps"])

    def inspect(self, *container_ids: str) -> CommandLine:
        return CommandLine([self.binary, "inspect"], container_ids)
