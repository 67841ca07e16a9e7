from __future__ import annotations

from typing import TypedDict, TypeAlias

PlatformTag: TypeAlias = str


class RunResult(TypedDict):
    script_path: str
    returncode: int
    stdout: str
    stderr: str


class SettingsData(TypedDict, total=False):
    python_path: str
    use_terminal: bool
    close_on_success: bool
    folders: list[str]
