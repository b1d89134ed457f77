"""Tests for the shell and docker command line builders."""

from clusteradm.exec.shell import CommandLine, DockerCli, Shell


class TestCommandLine:

    def test_options_precede_arguments(self):
        cmd = Shell().mkdir("/a", "/b").add_option("--parents")

        assert cmd.argv() == ["mkdir", "--parents", "/a", "/b"]
        assert cmd.render() == "mkdir --parents /a /b"

    def test_option_interpolation(self):
        cmd = CommandLine(["df"], ["/data"]).add_option("--output=%s", "size,used")

        assert cmd.options == ["--output=size,used"]

    def test_option_with_several_values(self):
        cmd = CommandLine(["docker", "create"], ["img"]).add_option("--volume=%s:%s", "/dev", "/dev")

        assert cmd.options == ["--volume=/dev:/dev"]

    def test_option_with_percent_and_no_values(self):
        cmd = CommandLine(["date"]).add_option("+%Y")

        assert cmd.options == ["+%Y"]

    def test_render_quotes_unsafe_arguments(self):
        cmd = Shell().remove("/data/my dir")

        assert cmd.render() == "rm '/data/my dir'"
        assert cmd.argv() == ["rm", "/data/my dir"]

    def test_raw_command_is_not_quoted(self):
        cmd = Shell().command("echo hi | tr a-z A-Z")

        assert cmd.render() == "echo hi | tr a-z A-Z"
        assert cmd.argv() == ["bash", "-c", "echo hi | tr a-z A-Z"]


class TestShell:

    def test_builders(self):
        shell = Shell()

        assert shell.mkfs("/dev/sdb").argv() == ["mkfs.ext4", "/dev/sdb"]
        assert shell.mount("/dev/sdb", "/data").argv() == ["mount", "/dev/sdb", "/data"]
        assert shell.umount("/data").argv() == ["umount", "/data"]
        assert shell.fuser("/a", "/b").argv() == ["fuser", "/a", "/b"]
        assert shell.disk_free("/data").argv() == ["df", "/data"]
        assert shell.lsblk("/dev/sda").argv() == ["lsblk", "/dev/sda"]
        assert shell.modprobe("nbd", "nbds_max=64").argv() == ["modprobe", "nbd", "nbds_max=64"]


class TestDockerCli:

    def test_create_puts_command_after_image(self):
        cmd = DockerCli().create("busybox", ["sleep", "60"]).add_option("--name=%s", "box")

        assert cmd.argv() == ["docker", "create", "--name=box", "busybox", "sleep", "60"]

    def test_custom_binary(self):
        docker = DockerCli(binary="podman")

        assert docker.pull("busybox").argv() == ["podman", "pull", "busybox"]
        assert docker.start("abc").argv() == ["podman", "start", "abc"]

    def test_container_management(self):
        docker = DockerCli()

        assert docker.stop("abc").argv() == ["docker", "stop", "abc"]
        assert docker.remove("abc").add_option("--force").argv() == ["docker", "rm", "--force", "abc"]
        assert docker.list_containers().add_option("--all").argv() == ["docker", "ps", "--all"]
        assert docker.inspect("abc").argv() == ["docker", "inspect", "abc"]
