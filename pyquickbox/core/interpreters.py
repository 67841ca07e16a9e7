from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path

VENV_DIR_NAMES = (".venv", "venv", "env")

FALLBACK_INTERPRETERS = {
    "mac": "/usr/bin/python3",
    "linux": "/usr/bin/python3",
    "win": "python",
}


def current_platform_tag(platform: str | None = None) -> str:
    name = platform if platform is not None else sys.platform
    if name == "darwin":
        return "mac"
    if name.startswith(("win", "cygwin", "msys")):
        return "win"
    return "linux"


def fallback_interpreter(platform_tag: str) -> str:
    return FALLBACK_INTERPRETERS.get(platform_tag, FALLBACK_INTERPRETERS["linux"])


def expand_user_path(path: str) -> str:
    clean = (path or "").strip()
    if clean.startswith("~"):
        return os.path.expanduser(clean)
    return clean


def is_bare_command(path: str) -> bool:
    return bool(path) and "/" not in path and "\\" not in path


def locate_interpreter(path: str) -> str | None:
    """Return an existing interpreter for *path*, or ``None``.

    Bare command names such as ``python`` are looked up on ``PATH``; anything
    with a separator must name an existing file.
    """
    candidate = expand_user_path(path)
    if not candidate:
        return None
    if is_bare_command(candidate):
        return shutil.which(candidate)
    if Path(candidate).is_file():
        return candidate
    return None


def venv_candidates(folder: str | Path, platform_tag: str) -> list[Path]:
    root = Path(expand_user_path(str(folder)))
    candidates: list[Path] = []
    for name in VENV_DIR_NAMES:
        if platform_tag == "win":
            candidates.append(root / name / "Scripts" / "python.exe")
        else:
            candidates.append(root / name / "bin" / "python")
            candidates.append(root / name / "bin" / "python3")
    return candidates


def detect_venv_interpreter(folder: str | Path, platform_tag: str) -> str | None:
    for candidate in venv_candidates(folder, platform_tag):
        if candidate.is_file():
            return str(candidate)
    return None
