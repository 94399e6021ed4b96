"""Stand-ins for fabric connections that record the commands they run."""
from typing import Dict, List, Optional

import pytest


class FakeResult:
    def __init__(self, stdout: str = "", exited: int = 0, stderr: str = ""):
        self.stdout = stdout
        self.exited = exited
        self.stderr = stderr

    @property
    def failed(self) -> bool:
        return self.exited != 0


class FakeConnection:
    """Records commands; ``responses`` maps a command prefix to its result."""

    def __init__(self, host: str, responses: Optional[Dict[str, FakeResult]] = None, log: Optional[List] = None):
        self.host = host
        self.responses = responses or {}
        self.commands = []
        self.log = log
        self.closed = False

    def run(self, command, hide=None, warn=None):
        self.commands.append(command)
        if self.log is not None:
            self.log.append((self.host, command))
        for prefix, result in self.responses.items():
            if command.startswith(prefix):
                return result
        return FakeResult()

    def close(self):
        self.closed = True


@pytest.fixture
def command_log() -> List:
    return []


@pytest.fixture
def app_connections(command_log) -> List[FakeConnection]:
    return [
        FakeConnection("ip-10-3-46-182.ap-southeast-2.compute.internal", log=command_log),
        FakeConnection("ip-10-3-68-167.ap-southeast-2.compute.internal", log=command_log),
    ]
