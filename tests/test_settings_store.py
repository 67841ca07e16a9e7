import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from pyquickbox import settings_store
from pyquickbox.settings_store import MemorySettingsStore, Settings, SettingsStore


class TestSettingsStore(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "nested" / "settings.json"

    def test_missing_file_gives_defaults(self) -> None:
        self.assertEqual(SettingsStore(self.path).load(), Settings())

    def test_save_and_load(self) -> None:
        store = SettingsStore(self.path)
        store.save(
            Settings(
                python_path="/opt/py/bin/python",
                use_terminal=True,
                close_on_success=True,
                folders=["/a", "/b"],
            )
        )
        self.assertFalse(self.path.with_suffix(".json.tmp").exists())
        loaded = SettingsStore(self.path).load()
        self.assertEqual(loaded.python_path, "/opt/py/bin/python")
        self.assertTrue(loaded.use_terminal)
        self.assertTrue(loaded.close_on_success)
        self.assertEqual(loaded.folders, ["/a", "/b"])

    def test_corrupt_file_gives_defaults(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertLogs("pyquickbox.settings_store", level="WARNING"):
            self.assertEqual(SettingsStore(self.path).load(), Settings())

    def test_values_are_coerced(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text(
            json.dumps(
                {
                    "python_path": "  /usr/bin/python3  ",
                    "use_terminal": "yes",
                    "close_on_success": "maybe",
                    "folders": ["/a", " /a ", "", "/b"],
                }
            ),
            encoding="utf-8",
        )
        loaded = SettingsStore(self.path).load()
        self.assertEqual(loaded.python_path, "/usr/bin/python3")
        self.assertTrue(loaded.use_terminal)
        self.assertFalse(loaded.close_on_success)
        self.assertEqual(loaded.folders, ["/a", "/b"])
        self.assertEqual(settings_store.settings_from_data(["nope"]), Settings())

    def test_env_var_overrides_location(self) -> None:
        with patch.dict(os.environ, {settings_store.CONFIG_ENV_VAR: str(self.path)}):
            self.assertEqual(settings_store.default_settings_path(), self.path)
            self.assertEqual(SettingsStore().path, self.path)

    def test_memory_store_copies(self) -> None:
        store = MemorySettingsStore(Settings(folders=["/a"]))
        loaded = store.load()
        loaded.folders.append("/b")
        self.assertEqual(store.load().folders, ["/a"])
        store.save(loaded)
        self.assertEqual(store.load().folders, ["/a", "/b"])


if __name__ == "__main__":
    unittest.main()
