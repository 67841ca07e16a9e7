from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from .shared_types import SettingsData

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PYQUICKBOX_CONFIG"
APP_DIR_NAME = "pyquickbox"
SETTINGS_FILE_NAME = "settings.json"


@dataclass(slots=True)
class Settings:
    python_path: str = ""
    use_terminal: bool = False
    close_on_success: bool = False
    folders: list[str] = field(default_factory=list)

    def to_data(self) -> SettingsData:
        return asdict(self)  # type: ignore[return-value]


def default_settings_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    if os.name == "nt":
        base = Path(os.environ.get("APPDATA") or Path.home() / "AppData" / "Roaming")
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
    return base / APP_DIR_NAME / SETTINGS_FILE_NAME


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        token = value.strip().lower()
        if token in {"true", "1", "yes", "y"}:
            return True
        if token in {"false", "0", "no", "n"}:
            return False
    return default


def _coerce_folders(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    folders: list[str] = []
    for entry in value:
        clean = str(entry).strip()
        if clean and clean not in folders:
            folders.append(clean)
    return folders


def settings_from_data(data: Any) -> Settings:
    if not isinstance(data, dict):
        return Settings()
    defaults = Settings()
    return Settings(
        python_path=str(data.get("python_path", defaults.python_path) or "").strip(),
        use_terminal=_coerce_bool(data.get("use_terminal"), defaults.use_terminal),
        close_on_success=_coerce_bool(
            data.get("close_on_success"), defaults.close_on_success
        ),
        folders=_coerce_folders(data.get("folders")),
    )


class SettingsStore:
    """JSON-backed store for user settings with explicit load and save."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else default_settings_path()

    def load(self) -> Settings:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return Settings()
        except OSError as exc:
            logger.warning("Could not read settings %s: %s", self.path, exc)
            return Settings()
        try:
            data = json.loads(text)
        except ValueError as exc:
            logger.warning("Ignoring corrupt settings %s: %s", self.path, exc)
            return Settings()
        return settings_from_data(data)

    def save(self, settings: Settings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(settings.to_data(), indent=2, ensure_ascii=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(payload + "\n", encoding="utf-8")
        os.replace(tmp_path, self.path)


class MemorySettingsStore:
    """In-process store used for one-off runs that must not touch disk."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._data = (settings or Settings()).to_data()

    def load(self) -> Settings:
        return settings_from_data(dict(self._data))

    def save(self, settings: Settings) -> None:
        self._data = settings.to_data()
