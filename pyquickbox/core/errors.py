from __future__ import annotations

from ..shared_types import RunResult


class LaunchError(Exception):
    """Base class for failures that stop or fail a single script launch."""


class InterpreterNotFound(LaunchError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Interpreter not found: {path}")
        self.path = path


class ProcessSpawnFailed(LaunchError):
    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"Could not start {command}: {reason}")
        self.command = command
        self.reason = reason


class NonZeroExit(LaunchError):
    def __init__(self, result: RunResult) -> None:
        super().__init__(f"Script exited with code {result['returncode']}")
        self.result = result

    @property
    def returncode(self) -> int:
        return int(self.result["returncode"])
