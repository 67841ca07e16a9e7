import os
import shutil
from pathlib import Path
from typing import Tuple

# Terminal emulators tried in order, each with the arguments that make it run
# the rest of its argv through bash.
LINUX_TERMINALS: Tuple[Tuple[str, ...], ...] = (
    ("gnome-terminal", "--", "bash", "-c"),
    ("konsole", "-e", "bash", "-c"),
    ("xfce4-terminal", "-x", "bash", "-c"),
    ("x-terminal-emulator", "-e", "bash", "-c"),
    ("xterm", "-e", "bash", "-c"),
)

LINUX_FILE_MANAGERS = ("nautilus", "dolphin", "nemo", "caja", "thunar", "pcmanfm")


def _is_executable(path: Path) -> bool:
    if not path.exists() or not path.is_file():
        return False
    if os.name == "nt":
        return True
    return os.access(path, os.X_OK)


def resolve_binary(tool: str) -> Tuple[Path | None, str]:
    """
    Resolve tool binary path.
    Returns (path, source) where source is one of: explicit, system, missing.
    """
    candidate = Path(tool).expanduser()
    if candidate.parent != Path(".") and _is_executable(candidate):
        return candidate, "explicit"

    system_path = shutil.which(tool)
    if system_path:
        return Path(system_path), "system"
    return None, "missing"


def resolve_terminal() -> list[str] | None:
    """Return the argv prefix for the first installed Linux terminal."""
    for entry in LINUX_TERMINALS:
        path, source = resolve_binary(entry[0])
        if source != "missing" and path is not None:
            return [str(path), *entry[1:]]
    return None


def resolve_file_manager() -> str:
    for name in LINUX_FILE_MANAGERS:
        path, _source = resolve_binary(name)
        if path is not None:
            return str(path)
    return "xdg-open"
