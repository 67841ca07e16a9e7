from __future__ import annotations

import logging
import os
import shlex
import subprocess
from pathlib import Path

from . import tooling
from .core.errors import NonZeroExit, ProcessSpawnFailed
from .core.interpreters import current_platform_tag
from .core.resolver import ExecutionDecision
from .shared_types import RunResult

logger = logging.getLogger(__name__)

POSIX_SHELL = "posix"
CMD_SHELL = "cmd"


def _child_env() -> dict[str, str]:
    env = os.environ.copy()
    env["PYTHONUNBUFFERED"] = "1"
    return env


def shell_family(platform_tag: str) -> str:
    return CMD_SHELL if platform_tag == "win" else POSIX_SHELL


def build_terminal_command(decision: ExecutionDecision, shell: str) -> str:
    """Compose the one-line command a terminal window runs for *decision*.

    The command changes into the working directory, runs the script, reports
    the exit status and keeps the window open until a key is pressed.
    """
    if shell == CMD_SHELL:
        return (
            f'cd /d "{decision.working_directory}" && '
            f'"{decision.interpreter_path}" "{decision.script_path}" '
            "& echo. & echo Exit Code: !ERRORLEVEL! & pause"
        )
    return (
        f"cd {shlex.quote(decision.working_directory)} && "
        f"{shlex.quote(decision.interpreter_path)} {shlex.quote(decision.script_path)}; "
        "echo; echo Exit Code: $?; echo 'Press Enter to exit...'; read -r _"
    )


def _applescript_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def windows_console_line(command: str) -> str:
    """Command line for a new cmd console running *command*.

    It must reach Popen as one string since list2cmdline escapes the inner
    quotes. /v:on defers !ERRORLEVEL! until the script has exited.
    """
    return f'cmd /v:on /k "{command}"'


def terminal_argv(command: str, platform_tag: str) -> list[str]:
    """Argv opening a terminal on macOS or Linux; see windows_console_line."""
    if platform_tag == "mac":
        source = (
            'tell application "Terminal"\n'
            "    activate\n"
            f'    do script "{_applescript_string(command)}"\n'
            "end tell"
        )
        return ["osascript", "-e", source]
    prefix = tooling.resolve_terminal()
    if prefix is None:
        raise ProcessSpawnFailed("terminal", "No supported terminal found.")
    return [*prefix, command]


class ProcessLauncher:
    """Spawns resolved scripts either in the background or in a terminal."""

    def __init__(self, platform_tag: str | None = None) -> None:
        self.platform_tag = platform_tag or current_platform_tag()

    def run_in_background(self, decision: ExecutionDecision) -> RunResult:
        argv = [decision.interpreter_path, decision.script_path]
        logger.debug("Running %s in %s", argv, decision.working_directory)
        try:
            completed = subprocess.run(
                argv,
                cwd=decision.working_directory,
                env=_child_env(),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
            )
        except OSError as exc:
            raise ProcessSpawnFailed(decision.interpreter_path, str(exc)) from exc
        return {
            "script_path": decision.script_path,
            "returncode": int(completed.returncode),
            "stdout": completed.stdout or "",
            "stderr": completed.stderr or "",
        }

    def launch_in_terminal(self, decision: ExecutionDecision) -> None:
        command = build_terminal_command(decision, shell_family(self.platform_tag))
        args: str | list[str]
        if self.platform_tag == "win":
            # The console owns the standard handles so pause can read a key.
            args = windows_console_line(command)
            options: dict = {
                "creationflags": getattr(subprocess, "CREATE_NEW_CONSOLE", 0),
            }
            program = "cmd"
        else:
            args = terminal_argv(command, self.platform_tag)
            options = {
                "stdin": subprocess.DEVNULL,
                "stdout": subprocess.DEVNULL,
                "stderr": subprocess.DEVNULL,
                "start_new_session": os.name != "nt",
            }
            program = args[0]
        logger.debug("Opening terminal: %s", args)
        try:
            subprocess.Popen(
                args,
                cwd=decision.working_directory,
                env=_child_env(),
                **options,
            )
        except OSError as exc:
            raise ProcessSpawnFailed(program, str(exc)) from exc

    def dispatch(self, decision: ExecutionDecision) -> RunResult | None:
        """Launch *decision*; terminal launches return ``None``.

        Raises :class:`NonZeroExit` when a background run fails.
        """
        if decision.run_in_terminal:
            self.launch_in_terminal(decision)
            return None
        result = self.run_in_background(decision)
        if result["returncode"] != 0:
            raise NonZeroExit(result)
        return result

    def open_location(self, path: str | Path) -> bool:
        target = Path(path).expanduser()
        folder = target if target.is_dir() else target.parent
        if self.platform_tag == "mac":
            argv = ["open", str(folder)]
        elif self.platform_tag == "win":
            argv = ["explorer", str(folder)]
        else:
            argv = [tooling.resolve_file_manager(), str(folder)]
        try:
            subprocess.Popen(argv)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to open %s: %s", folder, exc)
            return False
        return True
