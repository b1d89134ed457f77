"""Tests for the clusteradm command line."""

import shlex
from unittest.mock import MagicMock, patch

import pytest
import yaml

from clusteradm.cli.commands.check import normalize_mount_point
from clusteradm.cli.commands.common import format_table
from clusteradm.cli.main import create_parser, main
from clusteradm.task.executor import TaskSetExecutor
from clusteradm.task.tasks import playground


def fake_run(responses):
    """subprocess.run stand-in answering by substring of the joined argv."""
    calls = []

    def run(argv, **kwargs):
        line = shlex.join(argv)
        calls.append(line)
        result = MagicMock()
        result.returncode, result.stdout, result.stderr = 0, b"", b""
        for substring, (code, out, err) in responses.items():
            if substring in line:
                result.returncode, result.stdout, result.stderr = code, out, err
                break
        return result

    run.calls = calls
    return run


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestParser:

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_exec_options(self):
        args = create_parser().parse_args([
            "exec", "uptime", "--host", "a", "--host", "b", "--parallel", "2",
            "--max-retries", "1", "--sudo", "--debug",
        ])

        assert args.shell_command == "uptime"
        assert args.host == ["a", "b"]
        assert args.parallel == 2
        assert args.max_retries == 1
        assert args.sudo is True
        assert args.log_level == "warn"


class TestCheck:

    def test_mounted(self, workspace, capsys):
        run = fake_run({
            "docker ps": (0, b"abc123\n", b""),
            "docker inspect": (0, b"running\n", b""),
        })
        with patch('subprocess.run', side_effect=run):
            assert main(["check", "/mnt/fs/"]) == 0

        out = capsys.readouterr().out
        assert "Mount Point : /mnt/fs" in out
        assert "Container Id: abc123" in out
        assert "Mount Status: mounted" in out
        assert (workspace / ".clusteradm" / "audit.log").exists()

    def test_with_sudo(self, workspace):
        run = fake_run({})
        with patch('subprocess.run', side_effect=run):
            assert main(["check", "/mnt/fs", "--sudo"]) == 0

        assert run.calls[0].startswith("sudo docker ps")

    def test_docker_failure(self, workspace, capsys):
        run = fake_run({"docker ps": (1, b"", b"Cannot connect to the Docker daemon\n")})
        with patch('subprocess.run', side_effect=run):
            assert main(["check", "/mnt/fs"]) == 1

        assert "ABORTED" in capsys.readouterr().err

    def test_invalid_topology(self, workspace):
        (workspace / "topology.yml").write_text("version: '9'\nhosts: []\n")

        assert main(["check", "/mnt/fs", "--topology", "topology.yml"]) == 2

    def test_interrupted(self, workspace):
        with patch.object(TaskSetExecutor, "execute", side_effect=KeyboardInterrupt):
            assert main(["check", "/mnt/fs"]) == 130

    def test_unknown_host(self, workspace):
        run = fake_run({})
        with patch('subprocess.run', side_effect=run):
            assert main(["check", "/mnt/fs", "--host", "node-9"]) == 2

        assert run.calls == []


class TestExec:

    def test_prints_output(self, workspace, capsys):
        run = fake_run({"uptime": (0, b" up 3 days\n", b"")})
        with patch('subprocess.run', side_effect=run):
            assert main(["exec", "uptime"]) == 0

        assert run.calls == ["bash -c uptime"]
        assert capsys.readouterr().out == "[localhost]\n up 3 days\n"

    def test_failure(self, workspace, capsys):
        run = fake_run({"false": (1, b"", b"")})
        with patch('subprocess.run', side_effect=run):
            assert main(["exec", "false"]) == 1

        err = capsys.readouterr().err
        assert "localhost" in err
        assert "ABORTED" in err

    def test_retries(self, workspace):
        run = fake_run({"false": (1, b"", b"")})
        with patch('subprocess.run', side_effect=run):
            assert main(["exec", "false", "--max-retries", "2", "--retry-delay", "0"]) == 1

        assert len(run.calls) == 3

    def test_unknown_host(self, workspace):
        assert main(["exec", "uptime", "--host", "node-9"]) == 2

    def test_selected_hosts_from_topology(self, workspace, capsys):
        (workspace / "topology.yml").write_text(yaml.dump({
            "version": "1",
            "hosts": [
                {"name": "ctl", "exec_in_local": True},
                {"name": "other", "exec_in_local": True},
            ],
        }))
        run = fake_run({"hostname": (0, b"box\n", b"")})
        with patch('subprocess.run', side_effect=run):
            assert main(["exec", "hostname", "--topology", "topology.yml", "--host", "other"]) == 0

        assert capsys.readouterr().out == "[other]\nbox\n"
        assert len(run.calls) == 1


class TestPlayground:

    def test_run(self, workspace, capsys, monkeypatch):
        monkeypatch.setattr(playground, "PLAYGROUND_WAIT_SEC", 0)
        run = fake_run({"docker create": (0, b"cid\n", b"")})
        with patch('subprocess.run', side_effect=run):
            assert main(["playground", "run", "--kind", "curvebs", "--image", "img", "--name", "pg"]) == 0

        assert run.calls[0] == "modprobe nbd nbds_max=64"
        assert run.calls[-1] == "docker start cid"
        assert "Playground 'pg' (curvebs): run done" in capsys.readouterr().out

    def test_clean(self, workspace):
        run = fake_run({})
        with patch('subprocess.run', side_effect=run):
            assert main([
                "playground", "clean", "--kind", "curvefs", "--image", "img",
                "--name", "pg", "--mount-point", "/mnt/fs",
            ]) == 0

        assert run.calls == ["docker rm --force pg", "umount /mnt/fs", "rm --force --recursive /mnt/fs"]

    def test_requires_image(self, workspace):
        assert main(["playground", "run", "--kind", "curvebs"]) == 2

    def test_requires_kind(self, workspace):
        assert main(["playground", "run", "--image", "img"]) == 2

    def test_settings_from_topology(self, workspace):
        (workspace / "topology.yml").write_text(yaml.dump({
            "version": "1",
            "hosts": [{"name": "ctl", "exec_in_local": True}],
            "playground": {"kind": "curvebs", "name": "from-file", "container_image": "img"},
        }))
        run = fake_run({})
        with patch('subprocess.run', side_effect=run):
            assert main(["playground", "clean", "--topology", "topology.yml"]) == 0

        assert run.calls == ["docker rm --force from-file"]


class TestAudit:

    def test_lists_previous_commands(self, workspace, capsys):
        run = fake_run({})
        with patch('subprocess.run', side_effect=run):
            main(["exec", "uptime"])
        capsys.readouterr()

        assert main(["audit"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split()[0] == "Id"
        assert "SUCCESS" in lines[2]
        assert lines[2].endswith("uptime")

    def test_tail(self, workspace, capsys):
        with patch('subprocess.run', side_effect=fake_run({})):
            main(["exec", "first"])
            main(["exec", "second"])
        capsys.readouterr()

        assert main(["audit", "--tail", "1"]) == 0

        out = capsys.readouterr().out
        assert "second" in out
        assert "first" not in out

    def test_empty(self, workspace, capsys):
        assert main(["audit"]) == 0
        assert "Id" in capsys.readouterr().out


def test_normalize_mount_point():
    assert normalize_mount_point("/mnt/fs/") == "/mnt/fs"
    assert normalize_mount_point("/mnt/fs") == "/mnt/fs"
    assert normalize_mount_point("/") == "/"


def test_format_table():
    table = format_table(["Host", "Status"], [["node-1", "OK"], ["n2", "FAILED"]])

    assert table.splitlines() == [
        "Host    Status",
        "----    ------",
        "node-1  OK",
        "n2      FAILED",
    ]
