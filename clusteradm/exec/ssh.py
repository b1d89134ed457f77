"""
SSH transport for remote command dispatch.

One SshSession per host, connected lazily on first use and reused by every
step that targets that host.
"""

import logging
import os
import socket
import threading
import time
from typing import List, Optional, Tuple

import paramiko

from ..exceptions import TransportError


logger = logging.getLogger(__name__)

# Exit code reported when a remote command exceeds its timeout.
TIMEOUT_EXIT_CODE = 124

RECV_CHUNK_SIZE = 16 * 1024
POLL_INTERVAL_SEC = 0.05


class SshSession:
    """Lazily connected paramiko client bound to one host."""

    def __init__(
        self,
        hostname: str,
        port: int = 22,
        username: Optional[str] = None,
        private_key_file: Optional[str] = None,
        forward_agent: bool = False,
        connect_timeout_sec: Optional[float] = 10,
    ):
        self.hostname = hostname
        self.port = port
        self.username = username
        self.private_key_file = os.path.expanduser(private_key_file) if private_key_file else None
        self.forward_agent = forward_agent
        self.connect_timeout_sec = connect_timeout_sec
        self._client: Optional[paramiko.SSHClient] = None
        self._lock = threading.Lock()

    def __repr__(self):
        return f"<SshSession {self.username or ''}@{self.hostname}:{self.port}>"

    def netloc(self) -> str:
        return f"{self.hostname}:{self.port}"

    def client(self) -> paramiko.SSHClient:
        with self._lock:
            if self._client is not None:
                return self._client

            ssh_client = paramiko.SSHClient()
            ssh_client.load_system_host_keys()
            ssh_client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
            logger.debug(f"Connecting to {self}")
            try:
                ssh_client.connect(
                    self.hostname,
                    port=self.port,
                    username=self.username,
                    key_filename=self.private_key_file,
                    look_for_keys=not self.private_key_file,
                    allow_agent=self.forward_agent or not self.private_key_file,
                    timeout=self.connect_timeout_sec,
                )
            except paramiko.ssh_exception.NoValidConnectionsError as e:
                raise TransportError(f"Cannot connect to {self.netloc()}: {e} (is port opened?)", self.hostname)
            except paramiko.ssh_exception.AuthenticationException as e:
                raise TransportError(f"Authentication failed for {self}: {e}", self.hostname)
            except paramiko.ssh_exception.SSHException as e:
                raise TransportError(f"Cannot connect to {self.netloc()}: {e}", self.hostname)
            except (socket.error, OSError) as e:
                raise TransportError(f"Cannot connect to {self.netloc()}: {e}", self.hostname)

            self._client = ssh_client
            return self._client

    def run(self, script: str, timeout_sec: Optional[float] = None) -> Tuple[int, bytes, bytes]:
        """
        Run a shell command line on the remote host.

        Returns:
            (exit_code, stdout, stderr); exit_code is 124 on timeout
        """
        client = self.client()
        try:
            _, stdout, _ = client.exec_command(script, timeout=timeout_sec)
            out, err = drain_channel(stdout.channel, timeout_sec)
            exit_code = stdout.channel.recv_exit_status()
        except socket.timeout:
            logger.warning(f"Command timed out after {timeout_sec} seconds on {self.netloc()}: {script}")
            return TIMEOUT_EXIT_CODE, b"", f"Command timed out after {timeout_sec} seconds".encode()
        except paramiko.ssh_exception.SSHException as e:
            raise TransportError(f"Failed to run command on {self.netloc()}: {e}", self.hostname)
        except (OSError, EOFError) as e:
            raise TransportError(f"Connection to {self.netloc()} lost: {e}", self.hostname)
        return exit_code, out, err

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None


def drain_channel(channel, timeout_sec: Optional[float] = None) -> Tuple[bytes, bytes]:
    """
    Collect stdout and stderr of a running command until it exits.

    Both streams are read in the same loop so a command writing a lot to one
    of them cannot stall on a full window of the other.

    Raises:
        socket.timeout: The command did not exit within timeout_sec
    """
    deadline = None if timeout_sec is None else time.monotonic() + timeout_sec
    out: List[bytes] = []
    err: List[bytes] = []
    while True:
        # exit status arrives after the last data, so check it before reading
        exited = channel.exit_status_ready()
        received = False
        if channel.recv_ready():
            out.append(channel.recv(RECV_CHUNK_SIZE))
            received = True
        if channel.recv_stderr_ready():
            err.append(channel.recv_stderr(RECV_CHUNK_SIZE))
            received = True
        if received:
            continue
        if exited:
            return b"".join(out), b"".join(err)
        if deadline is not None and time.monotonic() > deadline:
            raise socket.timeout()
        time.sleep(POLL_INTERVAL_SEC)
