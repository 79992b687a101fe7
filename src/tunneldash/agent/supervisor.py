"""Supervision of cloudflared access processes, one per hostname."""

import subprocess
import threading

from ..common.config import DEFAULT_AGENT_BINARY
from ..common.exceptions import ProcessError
from ..common.logging import get_logger
from ..common.utils import validate_non_empty_string, validate_port
from .binary import AccessProtocol, build_access_args, resolve_agent_binary

logger = get_logger(__name__)


class ProcessTable:
    """Map of hostname to running agent process, guarded by one lock.

    ``lock`` is a plain non-reentrant lock. ``get``, ``insert``, ``remove``
    and ``items`` expect the caller to hold it; ``snapshot`` and ``len()``
    take it themselves.
    """

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self._processes: dict[str, subprocess.Popen[bytes]] = {}

    def get(self, hostname: str) -> subprocess.Popen[bytes] | None:
        return self._processes.get(hostname)

    def insert(self, hostname: str, process: subprocess.Popen[bytes]) -> None:
        self._processes[hostname] = process

    def remove(self, hostname: str) -> subprocess.Popen[bytes] | None:
        return self._processes.pop(hostname, None)

    def items(self) -> list[tuple[str, subprocess.Popen[bytes]]]:
        return list(self._processes.items())

    def snapshot(self) -> list[str]:
        """Hostnames currently in the table."""
        with self.lock:
            return list(self._processes)

    def __len__(self) -> int:
        with self.lock:
            return len(self._processes)


class TunnelSupervisor:
    """Starts and stops ``cloudflared access`` processes keyed by hostname.

    A hostname has at most one process. Starting a hostname that is already
    in the table is a no-op, whatever port or protocol is requested, and
    stopping never fails.
    """

    def __init__(
        self,
        agent_binary: str = DEFAULT_AGENT_BINARY,
        table: ProcessTable | None = None,
        stop_wait_timeout: float = 2.0,
    ):
        """Initialize the supervisor.

        Args:
            agent_binary: cloudflared executable name or path
            table: Process table to use; a private one is created if None
            stop_wait_timeout: Seconds to wait for a killed process to exit
        """
        self.agent_binary = agent_binary
        self.table = table if table is not None else ProcessTable()
        self.stop_wait_timeout = stop_wait_timeout

    def start(
        self,
        hostname: str,
        local_port: int,
        protocol: str | AccessProtocol | None = None,
    ) -> None:
        """Start an access tunnel for ``hostname`` unless one is already tracked.

        Args:
            hostname: Public hostname to reach through the tunnel
            local_port: Local port cloudflared should listen on
            protocol: ``tcp`` (default) or ``ssh``

        Raises:
            ValueError: If hostname is empty or the port is out of range
            ProcessError: If the agent process cannot be spawned
        """
        validate_non_empty_string(hostname, "Hostname")
        validate_port(local_port, "Local port")

        executable = resolve_agent_binary(self.agent_binary)
        args = build_access_args(hostname, local_port, protocol)

        with self.table.lock:
            existing = self.table.get(hostname)
            if existing is not None:
                logger.debug(
                    "Tunnel already running", hostname=hostname, pid=existing.pid
                )
                return

            command = [executable, *args]
            logger.info("Spawning agent", hostname=hostname, command=command)
            try:
                process = subprocess.Popen(
                    command,
                    stdin=subprocess.DEVNULL,
                    start_new_session=True,
                )
            except OSError as e:
                logger.error("Failed to spawn agent", hostname=hostname, error=str(e))
                raise ProcessError(str(e)) from e

            self.table.insert(hostname, process)
            logger.info("Tunnel started", hostname=hostname, pid=process.pid)

    def stop(self, hostname: str) -> None:
        """Forget the tunnel for ``hostname`` and kill its process.

        Never raises: a process that already exited, or cannot be signalled,
        is logged and otherwise ignored.
        """
        with self.table.lock:
            process = self.table.remove(hostname)
            if process is None:
                logger.debug("No tunnel to stop", hostname=hostname)
                return
            try:
                process.kill()
            except OSError as e:
                logger.warning(
                    "Failed to kill agent process",
                    hostname=hostname,
                    pid=process.pid,
                    error=str(e),
                )

        self._wait_for_exit(hostname, process)
        logger.info("Tunnel stopped", hostname=hostname)

    def stop_all(self) -> None:
        """Stop every tracked tunnel."""
        for hostname in self.table.snapshot():
            self.stop(hostname)

    def is_running(self, hostname: str) -> bool:
        """Whether ``hostname`` has an entry in the table."""
        with self.table.lock:
            return self.table.get(hostname) is not None

    def running_hostnames(self) -> list[str]:
        return self.table.snapshot()

    def reap(self) -> list[str]:
        """Drop entries whose process has exited on its own.

        Returns:
            Hostnames that were removed
        """
        reaped = []
        with self.table.lock:
            for hostname, process in self.table.items():
                returncode = process.poll()
                if returncode is None:
                    continue
                self.table.remove(hostname)
                reaped.append(hostname)
                logger.info(
                    "Reaped exited tunnel", hostname=hostname, returncode=returncode
                )
        return reaped

    def _wait_for_exit(
        self, hostname: str, process: subprocess.Popen[bytes]
    ) -> None:
        if self.stop_wait_timeout <= 0:
            return
        try:
            process.wait(timeout=self.stop_wait_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(
                "Agent process did not exit after kill",
                hostname=hostname,
                pid=process.pid,
            )
        except OSError as e:
            logger.warning("Error waiting for agent process", hostname=hostname, error=str(e))
