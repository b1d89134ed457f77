"""Tests for the audit recorders and the audit table."""

import json
import threading
from datetime import datetime, timezone

import pytest

from clusteradm.audit import AuditLog, AuditLogEntry, AuditRecorder, AuditStatus, MemoryAuditLog
from clusteradm.cli.commands.audit import format_audit_logs


class TestAuditLog:

    def test_ids_are_sequential(self):
        log = MemoryAuditLog()
        first = log.record("mkdir /a", AuditStatus.SUCCESS, "host-1")
        second = log.record("mkdir /b", AuditStatus.FAIL, "host-2")

        assert (first.id, second.id) == (1, 2)
        assert [e.command for e in log.entries()] == ["mkdir /a", "mkdir /b"]

    def test_file_log_persists_and_continues_ids(self, tmp_path):
        path = tmp_path / ".clusteradm" / "audit.log"
        AuditLog(path).record("mkdir /a", AuditStatus.SUCCESS, "host-1")

        log = AuditLog(path)
        entry = log.record("umount /mnt", AuditStatus.ABORT, "host-1")

        assert entry.id == 2
        entries = log.entries()
        assert [e.id for e in entries] == [1, 2]
        assert entries[1].status == AuditStatus.ABORT
        lines = path.read_text().splitlines()
        assert json.loads(lines[0])["command"] == "mkdir /a"

    def test_for_workspace(self, tmp_path):
        log = AuditLog.for_workspace(tmp_path)
        assert log.path == tmp_path / ".clusteradm" / "audit.log"
        assert log.entries() == []

    def test_corrupted_lines_are_skipped(self, tmp_path, caplog):
        path = tmp_path / "audit.log"
        good = AuditLogEntry(7, "df /", AuditStatus.SUCCESS, datetime.now(timezone.utc), "h").to_dict()
        path.write_text("not json\n" + json.dumps(good) + "\n")

        log = AuditLog(path)

        assert [e.id for e in log.entries()] == [7]
        assert log.record("df /", AuditStatus.SUCCESS).id == 8
        assert "corrupted" in caplog.text

    def test_unwritable_sink_does_not_consume_id(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        log = AuditLog(blocker / "audit.log")

        assert log.record("mkdir /a", AuditStatus.SUCCESS) is None
        assert log._next_id == 1

    def test_concurrent_records(self):
        log = MemoryAuditLog()

        def worker():
            for _ in range(100):
                log.record("true", AuditStatus.SUCCESS, "h")

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        ids = [e.id for e in log.entries()]
        assert sorted(ids) == list(range(1, 501))

    def test_recorder_needs_a_sink(self):
        with pytest.raises(TypeError):
            AuditRecorder()

        class WriteOnly(AuditRecorder):
            def _write(self, entry):
                pass

        with pytest.raises(TypeError):
            WriteOnly()

    def test_round_trip(self):
        entry = AuditLogEntry(3, "rm -rf /x", AuditStatus.FAIL, datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc), None)
        assert AuditLogEntry.from_dict(entry.to_dict()) == entry


def test_format_audit_logs():
    entries = [
        AuditLogEntry(1, "mkdir --parents /a", AuditStatus.SUCCESS, datetime(2024, 1, 2, 3, 4, 5), "host-1"),
        AuditLogEntry(2, "umount /mnt", AuditStatus.ABORT, datetime(2024, 1, 2, 3, 4, 6), None),
    ]

    lines = format_audit_logs(entries).splitlines()

    assert lines[0].split() == ["Id", "Result", "Execute", "Time", "Host", "Command"]
    assert set(lines[1]) <= {"-", " "}
    assert lines[2].split()[:4] == ["1", "SUCCESS", "2024-01-02", "03:04:05"]
    assert lines[2].endswith("mkdir --parents /a")
    assert "ABORT" in lines[3]
