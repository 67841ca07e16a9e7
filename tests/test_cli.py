import io
import json
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from pyquickbox import cli


class TestCliDispatch(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.config = str(self.root / "settings.json")

    def _main(self, *argv: str) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        with patch("sys.stdout", out), patch("sys.stderr", err):
            rc = cli.main(["--config", self.config, *argv])
        return rc, out.getvalue(), err.getvalue()

    def _script(self, name: str, text: str) -> Path:
        path = self.root / name
        path.write_text(text, encoding="utf-8")
        return path

    def test_main_defaults_to_qt_frontend(self) -> None:
        with patch("pyquickbox.cli._run_qt", return_value=0) as run_qt:
            rc = cli.main(["--config", self.config])
        self.assertEqual(rc, 0)
        run_qt.assert_called_once()

    def test_gui_subcommand(self) -> None:
        with patch("pyquickbox.cli._run_qt", return_value=0) as run_qt:
            self.assertEqual(cli.main(["--config", self.config, "gui"]), 0)
        run_qt.assert_called_once()

    def test_run_prints_child_output(self) -> None:
        script = self._script("hello.py", "print('hello from child')\n")
        rc, out, _err = self._main("run", "--background", "--python", sys.executable, str(script))
        self.assertEqual(rc, 0)
        self.assertIn("hello from child", out)

    def test_run_returns_child_exit_code(self) -> None:
        script = self._script("bad.py", "import sys\nsys.exit(3)\n")
        rc, _out, _err = self._main("run", "--python", sys.executable, str(script))
        self.assertEqual(rc, 3)

    def test_run_with_missing_interpreter_is_usage_error(self) -> None:
        script = self._script("job.py", "#pqr def=/definitely/not/python\n")
        rc, _out, _err = self._main("run", str(script))
        self.assertEqual(rc, cli.EXIT_USAGE)

    def test_header_subcommand(self) -> None:
        script = self._script("job.py", "#pqr cat=Tools; linux=/usr/bin/python3; term=false\n")
        rc, out, _err = self._main("header", str(script))
        self.assertEqual(rc, 0)
        self.assertEqual(out.splitlines(), ["category=Tools", "linux=/usr/bin/python3", "term=false"])

    def test_config_updates_settings_file(self) -> None:
        rc, out, _err = self._main("config", "--python", "/opt/py", "--terminal", "true")
        self.assertEqual(rc, 0)
        self.assertIn("python_path=/opt/py", out)
        self.assertIn("use_terminal=true", out)
        data = json.loads(Path(self.config).read_text(encoding="utf-8"))
        self.assertEqual(data["python_path"], "/opt/py")
        self.assertTrue(data["use_terminal"])

    def test_folders_and_list(self) -> None:
        folder = self.root / "scripts"
        folder.mkdir()
        (folder / "tool.py").write_text("#pqr cat=Tools\n", encoding="utf-8")

        rc, _out, _err = self._main("folders", "add", str(folder))
        self.assertEqual(rc, 0)
        rc, out, _err = self._main("folders", "show")
        self.assertEqual(out.strip(), str(folder))

        rc, out, _err = self._main("list")
        self.assertEqual(rc, 0)
        self.assertIn("[Tools]", out)
        self.assertIn("tool", out)

        rc, _out, _err = self._main("folders", "remove", str(folder))
        self.assertEqual(rc, 0)
        rc, _out, err = self._main("folders", "remove", str(folder))
        self.assertEqual(rc, cli.EXIT_USAGE)
        self.assertIn("not registered", err)

    def test_folders_add_rejects_missing_path(self) -> None:
        rc, _out, err = self._main("folders", "add", str(self.root / "missing"))
        self.assertEqual(rc, cli.EXIT_USAGE)
        self.assertIn("Not a folder", err)
        rc, _out, _err = self._main("folders", "add")
        self.assertEqual(rc, cli.EXIT_USAGE)


if __name__ == "__main__":
    unittest.main()
