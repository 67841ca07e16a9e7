from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from . import interpreters
from .errors import InterpreterNotFound
from .header import ScriptMetadata


@dataclass(frozen=True)
class ExecutionDecision:
    interpreter_path: str
    run_in_terminal: bool
    working_directory: str
    script_path: str


def choose_interpreter(
    metadata: ScriptMetadata,
    *,
    platform_tag: str,
    default_interpreter: str,
) -> str:
    for candidate in (
        metadata.interpreter_for(platform_tag),
        metadata.default_interpreter,
        default_interpreter,
    ):
        clean = (candidate or "").strip()
        if clean:
            return clean
    return interpreters.fallback_interpreter(platform_tag)


def choose_run_mode(metadata: ScriptMetadata, *, default_terminal: bool) -> bool:
    if metadata.terminal_override is not None:
        return metadata.terminal_override
    return bool(default_terminal)


def resolve_execution(
    metadata: ScriptMetadata,
    *,
    script_path: str | Path,
    platform_tag: str,
    default_interpreter: str,
    default_terminal: bool,
) -> ExecutionDecision:
    """Combine header metadata with user defaults into a launchable decision.

    Raises :class:`InterpreterNotFound` when the chosen interpreter is neither
    an existing file nor a command found on ``PATH``.
    """
    chosen = choose_interpreter(
        metadata,
        platform_tag=platform_tag,
        default_interpreter=default_interpreter,
    )
    expanded = interpreters.expand_user_path(chosen)
    located = interpreters.locate_interpreter(expanded)
    if located is None:
        raise InterpreterNotFound(expanded)

    script = Path(os.path.abspath(interpreters.expand_user_path(str(script_path))))
    return ExecutionDecision(
        interpreter_path=located,
        run_in_terminal=choose_run_mode(metadata, default_terminal=default_terminal),
        working_directory=str(script.parent),
        script_path=str(script),
    )
