from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

from .. import launcher as launcher_mod
from ..core import catalog as core_catalog
from ..core import header as core_header
from ..core import interpreters as core_interpreters
from ..core import resolver as core_resolver
from ..core import run_state as core_run_state
from ..core import status as core_status
from ..core.errors import LaunchError
from ..core.header import ScriptMetadata
from ..core.resolver import ExecutionDecision
from ..core.run_state import RunState
from ..settings_store import Settings
from ..shared_types import RunResult

logger = logging.getLogger(__name__)

LOG_MAX_LINES = 1000

EVENT_SETTINGS = "settings"
EVENT_SCRIPTS = "scripts"
EVENT_STATUS = "status"
EVENT_RUN_STATE = "run_state"
EVENT_LOG = "log"


class SettingsBackend(Protocol):
    def load(self) -> Settings: ...

    def save(self, settings: Settings) -> None: ...


@dataclass(frozen=True)
class LaunchOutcome:
    script_path: str
    state: RunState
    message: str
    decision: ExecutionDecision | None = None
    result: RunResult | None = None
    error: LaunchError | None = None

    @property
    def succeeded(self) -> bool:
        return self.state in (RunState.SUCCEEDED, RunState.DETACHED)


class _Run:
    def __init__(self, script_path: str) -> None:
        self.script_path = script_path
        self.state = RunState.IDLE

    def advance(self, target: RunState) -> None:
        self.state = core_run_state.advance(self.state, target)


def _normalize_folder(folder: str | Path) -> Path:
    return Path(core_interpreters.expand_user_path(str(folder)))


class LauncherService:
    """Application state for the launcher, shared by the CLI and the Qt window.

    Readers call the query methods; the window registers with :meth:`subscribe`
    and is told the name of whatever changed. Notifications for background runs
    arrive on worker threads, so UI subscribers must marshal them onto their own
    thread.
    """

    def __init__(
        self,
        store: SettingsBackend,
        *,
        launcher: launcher_mod.ProcessLauncher | None = None,
        platform_tag: str | None = None,
    ) -> None:
        self._store = store
        self._launcher = launcher or launcher_mod.ProcessLauncher(platform_tag)
        self.platform_tag = platform_tag or self._launcher.platform_tag
        self._settings = store.load()
        self._groups: core_catalog.ScriptGroups = {}
        self._status = core_status.READY_MESSAGE
        self._log_lines: list[str] = []
        self._runs: dict[str, _Run] = {}
        self._subscribers: list[Callable[[str], None]] = []
        self._lock = threading.Lock()

    # -- subscriptions -------------------------------------------------------

    def subscribe(self, callback: Callable[[str], None]) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, event: str) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(event)

    # -- read side -----------------------------------------------------------

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def status(self) -> str:
        return self._status

    def log_lines(self) -> list[str]:
        with self._lock:
            return list(self._log_lines)

    def categories(self) -> list[str]:
        return core_catalog.ordered_categories(self._groups)

    def scripts(
        self, category: str = core_catalog.ALL_CATEGORIES, search: str = ""
    ) -> list[core_catalog.ScriptItem]:
        return core_catalog.filter_scripts(self._groups, category=category, search=search)

    def state_of(self, script_path: str | Path) -> RunState:
        with self._lock:
            run = self._runs.get(str(script_path))
        return run.state if run is not None else RunState.IDLE

    def metadata_for(self, script_path: str | Path) -> ScriptMetadata:
        return core_header.parse_header_file(script_path)

    # -- settings ------------------------------------------------------------

    def _save_settings(self) -> None:
        try:
            self._store.save(self._settings)
        except OSError as exc:
            self._set_status(f"Error: Could not save settings: {exc}")
            self._log(f"[error] Could not save settings: {exc}")
        self._notify(EVENT_SETTINGS)

    def set_python_path(self, path: str) -> None:
        self._settings.python_path = (path or "").strip()
        self._save_settings()

    def set_use_terminal(self, enabled: bool) -> None:
        self._settings.use_terminal = bool(enabled)
        self._save_settings()

    def set_close_on_success(self, enabled: bool) -> None:
        self._settings.close_on_success = bool(enabled)
        self._save_settings()

    def add_folder(self, folder: str | Path) -> bool:
        path = _normalize_folder(folder)
        if not path.is_dir():
            self._set_status(f"Error: Not a folder: {path}")
            return False
        normalized = str(path)
        if normalized in self._settings.folders:
            return False
        self._settings.folders.append(normalized)
        self._save_settings()
        self.refresh()
        return True

    def remove_folder(self, folder: str | Path) -> bool:
        target = str(_normalize_folder(folder))
        if target not in self._settings.folders:
            target = str(folder)
        if target not in self._settings.folders:
            return False
        self._settings.folders.remove(target)
        self._save_settings()
        self.refresh()
        return True

    def adopt_project_folder(self, folder: str | Path) -> str | None:
        found = core_interpreters.detect_venv_interpreter(folder, self.platform_tag)
        if found is None:
            self._set_status(f"No standard virtualenv found in: {Path(folder).name}")
            return None
        self.set_python_path(found)
        self._set_status(f"Auto-detected venv: {found}")
        return found

    # -- catalog -------------------------------------------------------------

    def refresh(self) -> None:
        self._groups = core_catalog.scan_folders(self._settings.folders)
        total = sum(len(items) for items in self._groups.values())
        self._log(f"[scan] {total} scripts in {len(self._settings.folders)} folders")
        self._notify(EVENT_SCRIPTS)

    def save_metadata(self, script_path: str | Path, metadata: ScriptMetadata) -> bool:
        try:
            core_header.write_script_metadata(script_path, metadata)
        except (OSError, ValueError) as exc:
            self._set_status(f"Error: Could not update {Path(script_path).name}: {exc}")
            self._log(f"[error] Could not update header of {script_path}: {exc}")
            return False
        self._log(f"[header] Updated {script_path}")
        self.refresh()
        return True

    def reveal(self, script_path: str | Path) -> bool:
        return self._launcher.open_location(script_path)

    # -- launching -----------------------------------------------------------

    def handle_drop(
        self,
        paths: Iterable[str | Path],
        *,
        on_done: Callable[[LaunchOutcome], None] | None = None,
    ) -> None:
        for raw in paths:
            path = Path(raw)
            if path.is_dir():
                self.add_folder(path)
            elif core_catalog.is_script_path(path):
                self.launch(path, on_done=on_done)
            else:
                self._set_status("Error: Only .py files or folders are supported.")

    def launch(
        self,
        script_path: str | Path,
        *,
        on_done: Callable[[LaunchOutcome], None] | None = None,
        blocking: bool = False,
        default_terminal: bool | None = None,
        python_path: str | None = None,
    ) -> LaunchOutcome | None:
        """Resolve and launch *script_path*.

        Resolution and terminal launches complete before returning. A
        background run waits for the child on a worker thread unless
        *blocking* is set, in which case the outcome is returned directly.
        """
        path = str(script_path)
        run = _Run(path)
        with self._lock:
            self._runs[path] = run
        self._advance(run, RunState.RESOLVING)

        metadata = core_header.parse_header_file(path)
        if default_terminal is None:
            default_terminal = self._settings.use_terminal
        try:
            decision = core_resolver.resolve_execution(
                metadata,
                script_path=path,
                platform_tag=self.platform_tag,
                default_interpreter=python_path or self._settings.python_path,
                default_terminal=default_terminal,
            )
        except LaunchError as exc:
            return self._complete(self._failed(run, exc, None), on_done)

        self._advance(run, RunState.LAUNCHING)
        self._log(f"[run] {Path(path).name} with {decision.interpreter_path}")
        if decision.run_in_terminal:
            return self._complete(self._execute(run, decision), on_done)

        self._advance(run, RunState.RUNNING)
        self._set_status(core_status.running_message(path, decision.interpreter_path))
        if blocking:
            return self._complete(self._execute(run, decision), on_done)

        thread = threading.Thread(
            target=self._background_worker,
            args=(run, decision, on_done),
            daemon=True,
        )
        thread.start()
        return None

    def _background_worker(
        self,
        run: _Run,
        decision: ExecutionDecision,
        on_done: Callable[[LaunchOutcome], None] | None,
    ) -> None:
        self._complete(self._execute(run, decision), on_done)

    def _execute(self, run: _Run, decision: ExecutionDecision) -> LaunchOutcome:
        try:
            result = self._launcher.dispatch(decision)
        except LaunchError as exc:
            return self._failed(run, exc, decision)
        if result is None:
            self._advance(run, RunState.DETACHED)
            return LaunchOutcome(
                script_path=run.script_path,
                state=RunState.DETACHED,
                message=core_status.detached_message(decision.interpreter_path),
                decision=decision,
            )
        self._advance(run, RunState.SUCCEEDED)
        return LaunchOutcome(
            script_path=run.script_path,
            state=RunState.SUCCEEDED,
            message=core_status.success_message(result),
            decision=decision,
            result=result,
        )

    def _failed(
        self, run: _Run, exc: LaunchError, decision: ExecutionDecision | None
    ) -> LaunchOutcome:
        self._advance(run, RunState.FAILED)
        self._log(f"[error] {Path(run.script_path).name}: {exc}")
        return LaunchOutcome(
            script_path=run.script_path,
            state=RunState.FAILED,
            message=core_status.failure_message(exc),
            decision=decision,
            result=getattr(exc, "result", None),
            error=exc,
        )

    def _complete(
        self,
        outcome: LaunchOutcome,
        on_done: Callable[[LaunchOutcome], None] | None,
    ) -> LaunchOutcome:
        self._set_status(outcome.message)
        if on_done is not None:
            on_done(outcome)
        return outcome

    def _advance(self, run: _Run, target: RunState) -> None:
        with self._lock:
            run.advance(target)
        self._notify(EVENT_RUN_STATE)

    # -- status and log ------------------------------------------------------

    def _set_status(self, message: str) -> None:
        self._status = message
        self._notify(EVENT_STATUS)

    def _log(self, message: str) -> None:
        logger.info(message)
        stamp = datetime.now().strftime("%H:%M:%S")
        with self._lock:
            self._log_lines.append(f"{stamp} {message}")
            if len(self._log_lines) > LOG_MAX_LINES:
                del self._log_lines[: len(self._log_lines) - LOG_MAX_LINES]
        self._notify(EVENT_LOG)


def record_outcome_line(outcome: LaunchOutcome) -> str:
    name = Path(outcome.script_path).name
    if outcome.result is not None:
        return f"{name}: {outcome.state.value} (rc={outcome.result['returncode']})"
    return f"{name}: {outcome.state.value}"
