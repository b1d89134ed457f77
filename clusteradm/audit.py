"""Audit recorder for dispatched commands.

Every command the execution module runs becomes one AuditLogEntry. The
recorder is shared by all host threads of a task set, so it serializes
writes internally. A failing sink never fails the command being audited.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


logger = logging.getLogger(__name__)

AUDIT_DIR = ".clusteradm"
AUDIT_FILE = "audit.log"


class AuditStatus(str, Enum):
    """Outcome of an audited command."""
    SUCCESS = "success"
    FAIL = "fail"
    ABORT = "abort"


@dataclass
class AuditLogEntry:
    """One audited command."""
    id: int
    command: str
    status: AuditStatus
    execute_time: datetime
    host: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "command": self.command,
            "status": self.status.value,
            "execute_time": self.execute_time.isoformat(),
            "host": self.host,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditLogEntry":
        return cls(
            id=data["id"],
            command=data["command"],
            status=AuditStatus(data["status"]),
            execute_time=datetime.fromisoformat(data["execute_time"]),
            host=data.get("host"),
        )


class AuditRecorder(ABC):
    """Assigns ids and hands entries to a sink; subclasses implement _write."""

    def __init__(self, first_id: int = 1):
        self._lock = threading.Lock()
        self._next_id = first_id

    def record(self, command: str, status: AuditStatus, host: Optional[str] = None) -> Optional[AuditLogEntry]:
        """
        Record one command outcome.

        Returns:
            The stored entry, or None if the sink rejected it
        """
        with self._lock:
            entry = AuditLogEntry(
                id=self._next_id,
                command=command,
                status=status,
                execute_time=datetime.now(timezone.utc),
                host=host,
            )
            try:
                self._write(entry)
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to write audit log entry for '{command}': {e}")
                return None
            self._next_id += 1
            return entry

    @abstractmethod
    def _write(self, entry: AuditLogEntry) -> None:
        """Persist one entry; OSError or ValueError marks it as rejected."""

    @abstractmethod
    def entries(self) -> List[AuditLogEntry]:
        """Every stored entry in id order."""


class MemoryAuditLog(AuditRecorder):
    """Keeps entries in memory; used for dry runs and tests."""

    def __init__(self):
        super().__init__()
        self._entries: List[AuditLogEntry] = []

    def _write(self, entry: AuditLogEntry) -> None:
        self._entries.append(entry)

    def entries(self) -> List[AuditLogEntry]:
        with self._lock:
            return list(self._entries)


class AuditLog(AuditRecorder):
    """Append-only JSON-lines audit file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        last_id = 0
        if self.path.exists():
            for entry in self._read():
                last_id = max(last_id, entry.id)
        super().__init__(first_id=last_id + 1)

    @classmethod
    def for_workspace(cls, workspace: Path) -> "AuditLog":
        return cls(Path(workspace) / AUDIT_DIR / AUDIT_FILE)

    def _write(self, entry: AuditLogEntry) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'a') as f:
            f.write(json.dumps(entry.to_dict()) + "\n")

    def _read(self) -> List[AuditLogEntry]:
        entries = []
        with open(self.path, 'r') as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(AuditLogEntry.from_dict(json.loads(line)))
                except (json.JSONDecodeError, KeyError, ValueError) as e:
                    logger.warning(f"Skipping corrupted audit log line {lineno} in {self.path}: {e}")
        return entries

    def entries(self) -> List[AuditLogEntry]:
        with self._lock:
            if not self.path.exists():
                return []
            return self._read()
