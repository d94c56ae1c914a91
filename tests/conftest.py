"""Shared fixtures."""

from typing import List, Tuple

import pytest

from sf_mcp_server import mcp_executor
from sf_mcp_server.mcp_errors import ExecutionError
from sf_mcp_server.mcp_models import ExecutionResult


class FakeExecutor:
    """Stands in for mcp_executor.run_command and records every argv it receives."""

    def __init__(self):
        self.calls: List[Tuple[str, ...]] = []
        self.result = ExecutionResult(stdout='{"status": 0, "result": []}')
        self.error = None

    async def __call__(self, argv, timeout=None, max_output_bytes=None):
        self.calls.append(tuple(argv))
        if self.error is not None:
            raise self.error
        return self.result

    def fail_with(self, message: str, returncode: int = 1) -> None:
        self.error = ExecutionError(message, returncode=returncode)


@pytest.fixture
def fake_executor(monkeypatch):
    fake = FakeExecutor()
    monkeypatch.setattr(mcp_executor, "run_command", fake)
    return fake
