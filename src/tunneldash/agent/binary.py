"""Locating and invoking the cloudflared agent binary."""

import os
import shutil
import subprocess
from enum import Enum

from ..common.config import DEFAULT_AGENT_BINARY
from ..common.exceptions import BinaryNotFoundError, ProcessError
from ..common.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_VERSION = "unknown"

# Desktop launchers often start with a trimmed PATH, so look here as well
COMMON_INSTALL_DIRS = (
    "/usr/local/bin",
    "/opt/homebrew/bin",
    "/usr/bin",
    "~/.cloudflared",
)


class AccessProtocol(str, Enum):
    """Sub-command of ``cloudflared access`` used for a tunnel."""

    TCP = "tcp"
    SSH = "ssh"

    @classmethod
    def parse(cls, value: "str | AccessProtocol | None") -> "AccessProtocol":
        """Map a caller-supplied protocol to a known one.

        Matching is exact. Missing or unrecognized values, including other
        spellings such as ``"SSH"``, fall back to TCP instead of failing.
        """
        if isinstance(value, AccessProtocol):
            return value
        if value is None:
            return cls.TCP
        try:
            return cls(value)
        except ValueError:
            logger.debug("Unrecognized protocol, using tcp", protocol=value)
            return cls.TCP


def build_access_args(
    hostname: str, local_port: int, protocol: "str | AccessProtocol | None" = None
) -> list[str]:
    """Build the ``cloudflared`` argument list for an access tunnel.

    Args:
        hostname: Public hostname served by the Cloudflare tunnel
        local_port: Local port the agent listens on
        protocol: ``tcp`` or ``ssh``; anything else means ``tcp``

    Returns:
        Arguments following the executable name
    """
    proto = AccessProtocol.parse(protocol)
    return [
        "access",
        proto.value,
        "--hostname",
        hostname,
        "--url",
        f"localhost:{local_port}",
    ]


def find_agent_binary(name: str = DEFAULT_AGENT_BINARY) -> str:
    """Find the agent binary in PATH or common install locations.

    Args:
        name: Executable name, or a path which is returned as-is

    Returns:
        Path to the executable

    Raises:
        BinaryNotFoundError: If no executable could be found
    """
    if os.path.dirname(name):
        return name

    found = shutil.which(name)
    if found:
        return found

    for directory in COMMON_INSTALL_DIRS:
        candidate = os.path.join(os.path.expanduser(directory), name)
        if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
            return candidate

    raise BinaryNotFoundError(f"{name} binary not found in PATH or common locations")


def resolve_agent_binary(name: str = DEFAULT_AGENT_BINARY) -> str:
    """Like :func:`find_agent_binary`, but fall back to the bare name.

    Spawning the bare name then fails with the operating system's own
    message, which is what callers get to see.
    """
    try:
        return find_agent_binary(name)
    except BinaryNotFoundError as e:
        logger.debug("Agent binary not resolved", binary=name, error=str(e))
        return name


def query_agent_version(binary: str = DEFAULT_AGENT_BINARY) -> str:
    """Run ``<binary> --version`` and return the first line of its output.

    Args:
        binary: Agent executable name or path

    Returns:
        First stdout line, stripped, or ``"unknown"`` if there is none

    Raises:
        ProcessError: If the binary cannot be run or exits with non-zero status
    """
    executable = resolve_agent_binary(binary)
    try:
        completed = subprocess.run(
            [executable, "--version"],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError as e:
        logger.error("Failed to run agent binary", binary=executable, error=str(e))
        raise ProcessError(str(e)) from e

    if completed.returncode != 0:
        raise ProcessError(
            f"{binary} --version failed: status {completed.returncode}"
        )

    lines = (completed.stdout or "").splitlines()
    first_line = lines[0].strip() if lines else ""
    return first_line or UNKNOWN_VERSION
