import os
import sys
import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import patch

from pyquickbox.core.errors import NonZeroExit, ProcessSpawnFailed
from pyquickbox.core.header import ScriptMetadata
from pyquickbox.core.run_state import RunState
from pyquickbox.services import app_service
from pyquickbox.settings_store import MemorySettingsStore, Settings


class _ReadOnlyStore(MemorySettingsStore):
    def save(self, settings: Settings) -> None:
        raise PermissionError(13, "Permission denied", "settings.json")


class _FakeLauncher:
    platform_tag = "linux"

    def __init__(self) -> None:
        self.decisions = []
        self.opened = []
        self.returncode = 0
        self.stdout = "hello\n"
        self.stderr = ""
        self.spawn_error: str | None = None

    def dispatch(self, decision):
        self.decisions.append(decision)
        if self.spawn_error is not None:
            raise ProcessSpawnFailed(decision.interpreter_path, self.spawn_error)
        if decision.run_in_terminal:
            return None
        result = {
            "script_path": decision.script_path,
            "returncode": self.returncode,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }
        if self.returncode != 0:
            raise NonZeroExit(result)
        return result

    def open_location(self, path) -> bool:
        self.opened.append(str(path))
        return True


class TestLauncherService(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.folder = self.root / "scripts"
        self.folder.mkdir()
        self.launcher = _FakeLauncher()
        self.store = MemorySettingsStore(Settings(python_path=sys.executable))
        self.service = app_service.LauncherService(
            self.store, launcher=self.launcher, platform_tag="linux"
        )
        self.events: list[str] = []
        self.service.subscribe(self.events.append)

    def _script(self, name: str, text: str) -> Path:
        path = self.folder / name
        path.write_text(text, encoding="utf-8")
        return path

    def test_missing_interpreter_fails_without_spawning(self) -> None:
        script = self._script("job.py", "#pqr linux=/definitely/not/python\n")
        outcome = self.service.launch(script)
        assert outcome is not None
        self.assertEqual(outcome.state, RunState.FAILED)
        self.assertEqual(
            outcome.message, "Error: Interpreter not found!\nPath: /definitely/not/python"
        )
        self.assertIsNone(outcome.decision)
        self.assertEqual(self.launcher.decisions, [])
        self.assertEqual(self.service.state_of(script), RunState.FAILED)
        self.assertEqual(self.service.status, outcome.message)
        self.assertTrue(any("[error]" in line for line in self.service.log_lines()))

    def test_header_terminal_wins_over_background_default(self) -> None:
        script = self._script("job.py", f"#pqr linux={sys.executable}; term=true\n")
        outcome = self.service.launch(script, default_terminal=False)
        assert outcome is not None
        self.assertEqual(outcome.state, RunState.DETACHED)
        self.assertTrue(outcome.succeeded)
        self.assertTrue(self.launcher.decisions[0].run_in_terminal)
        self.assertEqual(self.launcher.decisions[0].working_directory, str(self.folder))

    def test_blocking_background_success(self) -> None:
        script = self._script("job.py", "print('hello')\n")
        outcome = self.service.launch(script, blocking=True)
        assert outcome is not None
        self.assertEqual(outcome.state, RunState.SUCCEEDED)
        self.assertEqual(outcome.message, "Success:\nhello")
        self.assertEqual(self.launcher.decisions[0].interpreter_path, sys.executable)
        self.assertFalse(self.launcher.decisions[0].run_in_terminal)
        self.assertIn(app_service.EVENT_RUN_STATE, self.events)
        self.assertEqual(
            app_service.record_outcome_line(outcome), "job.py: succeeded (rc=0)"
        )

    def test_blocking_background_failure(self) -> None:
        self.launcher.returncode = 5
        self.launcher.stderr = "boom"
        script = self._script("job.py", "raise SystemExit(5)\n")
        outcome = self.service.launch(script, blocking=True)
        assert outcome is not None
        self.assertEqual(outcome.state, RunState.FAILED)
        self.assertEqual(outcome.message, "Failed:\nboom")
        self.assertEqual(outcome.result["returncode"], 5)
        self.assertIsInstance(outcome.error, NonZeroExit)

    def test_spawn_failure(self) -> None:
        self.launcher.spawn_error = "denied"
        script = self._script("job.py", "")
        outcome = self.service.launch(script, blocking=True)
        assert outcome is not None
        self.assertEqual(outcome.state, RunState.FAILED)
        self.assertEqual(outcome.message, "Error: denied")

    def test_background_launch_reports_through_callback(self) -> None:
        script = self._script("job.py", "")
        done = threading.Event()
        received = []

        def on_done(outcome) -> None:
            received.append(outcome)
            done.set()

        self.assertIsNone(self.service.launch(script, on_done=on_done))
        self.assertTrue(done.wait(5))
        self.assertEqual(received[0].state, RunState.SUCCEEDED)
        self.assertEqual(self.service.state_of(script), RunState.SUCCEEDED)

    def test_python_override_beats_settings(self) -> None:
        script = self._script("job.py", "")
        with patch(
            "pyquickbox.core.interpreters.shutil.which", return_value="/usr/bin/other"
        ):
            self.service.launch(script, blocking=True, python_path="other")
        self.assertEqual(self.launcher.decisions[0].interpreter_path, "/usr/bin/other")

    def test_unsubscribe(self) -> None:
        seen: list[str] = []
        unsubscribe = self.service.subscribe(seen.append)
        self.service.set_use_terminal(True)
        unsubscribe()
        self.service.set_close_on_success(True)
        self.assertEqual(seen, [app_service.EVENT_SETTINGS])
        self.assertTrue(self.store.load().use_terminal)
        self.assertTrue(self.store.load().close_on_success)

    def test_folders_drive_catalog(self) -> None:
        self._script("tool.py", "#pqr cat=Tools\n")
        self._script("misc.py", "")
        self.assertTrue(self.service.add_folder(self.folder))
        self.assertFalse(self.service.add_folder(self.folder))
        self.assertEqual(self.service.categories(), ["Tools", "Uncategorized"])
        self.assertEqual([i.name for i in self.service.scripts()], ["misc", "tool"])
        self.assertEqual(self.store.load().folders, [str(self.folder)])

        self.assertFalse(self.service.add_folder(self.root / "missing"))
        self.assertTrue(self.service.status.startswith("Error: Not a folder"))

        self.assertTrue(self.service.remove_folder(str(self.folder)))
        self.assertFalse(self.service.remove_folder(str(self.folder)))
        self.assertEqual(self.service.scripts(), [])

    def test_remove_folder_accepts_spelling_used_to_add(self) -> None:
        self.assertTrue(self.service.add_folder(str(self.folder) + os.sep))
        self.assertEqual(self.service.settings.folders, [str(self.folder)])
        self.assertTrue(self.service.remove_folder(str(self.folder) + os.sep))
        self.assertEqual(self.service.settings.folders, [])

        with patch.dict(os.environ, {"HOME": str(self.root), "USERPROFILE": str(self.root)}):
            self.assertTrue(self.service.add_folder("~/scripts"))
            self.assertEqual(self.service.settings.folders, [str(self.folder)])
            self.assertTrue(self.service.remove_folder("~/scripts"))
        self.assertEqual(self.store.load().folders, [])

    def test_unwritable_settings_are_reported_not_raised(self) -> None:
        service = app_service.LauncherService(
            _ReadOnlyStore(), launcher=self.launcher, platform_tag="linux"
        )
        service.set_python_path("/opt/py")
        self.assertEqual(service.settings.python_path, "/opt/py")
        self.assertTrue(service.status.startswith("Error: Could not save settings"))
        self.assertTrue(any("[error]" in line for line in service.log_lines()))

        self.assertTrue(service.add_folder(self.folder))
        self.assertTrue(service.remove_folder(self.folder))
        service.set_use_terminal(True)
        self.assertTrue(service.settings.use_terminal)

    def test_adopt_project_folder(self) -> None:
        project = self.root / "project"
        binary = project / ".venv" / "bin" / "python"
        binary.parent.mkdir(parents=True)
        binary.write_text("", encoding="utf-8")
        self.assertEqual(self.service.adopt_project_folder(project), str(binary))
        self.assertEqual(self.service.settings.python_path, str(binary))

        self.assertIsNone(self.service.adopt_project_folder(self.folder))
        self.assertEqual(self.service.settings.python_path, str(binary))
        self.assertIn("No standard virtualenv", self.service.status)

    def test_save_metadata_rewrites_header(self) -> None:
        script = self._script("job.py", "#!/usr/bin/env python3\nprint(1)\n")
        self.service.add_folder(self.folder)
        metadata = ScriptMetadata(category="Jobs", terminal_override=True)
        self.assertTrue(self.service.save_metadata(script, metadata))
        self.assertEqual(self.service.metadata_for(script).category, "Jobs")
        self.assertTrue(self.service.metadata_for(script).terminal_override)
        self.assertEqual(self.service.categories(), ["Jobs"])

        self.assertFalse(self.service.save_metadata(self.folder / "gone.py", metadata))
        self.assertTrue(self.service.status.startswith("Error: Could not update"))

    def test_handle_drop(self) -> None:
        script = self._script("job.py", "")
        other = self._script("notes.txt", "")
        outcomes = []
        done = threading.Event()

        def on_done(outcome) -> None:
            outcomes.append(outcome)
            done.set()

        self.service.handle_drop([self.folder], on_done=on_done)
        self.assertEqual(self.service.settings.folders, [str(self.folder)])

        self.service.handle_drop([other])
        self.assertEqual(self.service.status, "Error: Only .py files or folders are supported.")

        self.service.handle_drop([script], on_done=on_done)
        self.assertTrue(done.wait(5))
        self.assertEqual(outcomes[0].script_path, str(script))

    def test_reveal_delegates_to_launcher(self) -> None:
        script = self._script("job.py", "")
        self.assertTrue(self.service.reveal(script))
        self.assertEqual(self.launcher.opened, [str(script)])

    def test_log_is_capped(self) -> None:
        for _ in range(app_service.LOG_MAX_LINES + 5):
            self.service.refresh()
        self.assertEqual(len(self.service.log_lines()), app_service.LOG_MAX_LINES)


if __name__ == "__main__":
    unittest.main()
