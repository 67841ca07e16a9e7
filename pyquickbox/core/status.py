from __future__ import annotations

from pathlib import Path

from ..shared_types import RunResult
from .errors import InterpreterNotFound, LaunchError, NonZeroExit, ProcessSpawnFailed

READY_MESSAGE = "Ready to run."
OUTPUT_PREVIEW_CHARS = 2000


def _preview(text: str) -> str:
    clean = (text or "").strip()
    if len(clean) > OUTPUT_PREVIEW_CHARS:
        return "..." + clean[-OUTPUT_PREVIEW_CHARS:]
    return clean


def running_message(script_path: str, interpreter: str) -> str:
    return f"Running: {Path(script_path).name}\nUsing: {interpreter}"


def detached_message(interpreter: str) -> str:
    return f"Launched in terminal.\nUsing: {interpreter}"


def success_message(result: RunResult) -> str:
    output = _preview(result["stdout"])
    if not output:
        return "Success (No Output)"
    return f"Success:\n{output}"


def failure_message(exc: LaunchError) -> str:
    if isinstance(exc, InterpreterNotFound):
        return f"Error: Interpreter not found!\nPath: {exc.path}"
    if isinstance(exc, ProcessSpawnFailed):
        return f"Error: {exc.reason}"
    if isinstance(exc, NonZeroExit):
        detail = _preview(exc.result["stderr"]) or f"Exit Code {exc.returncode}"
        return f"Failed:\n{detail}"
    return f"Error: {exc}"
