"""Shared pytest fixtures for tunneldash tests."""

from unittest.mock import Mock

import pytest

from tunneldash.agent.supervisor import ProcessTable, TunnelSupervisor
from tunneldash.common.config import DashSettings

AGENT_BINARY = "/opt/cloudflared/bin/cloudflared"
API_BASE = "https://api.cloudflare.test/client/v4"
TOKEN = "test-token-1234"


@pytest.fixture
def mock_process():
    """Create a mock agent process that is still running.

    Returns:
        Mock: Mock process with common Popen attributes
    """
    process = Mock()
    process.pid = 4242
    process.poll.return_value = None
    process.kill.return_value = None
    process.wait.return_value = 0
    return process


@pytest.fixture
def mock_popen(monkeypatch, mock_process):
    """Mock subprocess.Popen so no real agent is ever spawned.

    Returns:
        Mock: Mocked Popen class returning ``mock_process``
    """
    popen = Mock(return_value=mock_process)
    monkeypatch.setattr("subprocess.Popen", popen)
    return popen


@pytest.fixture
def table():
    return ProcessTable()


@pytest.fixture
def supervisor(table):
    """Supervisor with an isolated table and a fixed binary path."""
    return TunnelSupervisor(agent_binary=AGENT_BINARY, table=table)


@pytest.fixture
def settings():
    return DashSettings(api_base_url=API_BASE, agent_binary=AGENT_BINARY)
