from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from .header import DEFAULT_CATEGORY, ScriptMetadata, parse_header_file

ALL_CATEGORIES = "All"
ICON_DIR_NAME = "icon"
DEFAULT_ICON_NAME = "default.png"

ScriptGroups = dict[str, list["ScriptItem"]]


@dataclass(frozen=True)
class ScriptItem:
    name: str
    path: str
    category: str
    icon_path: str | None
    metadata: ScriptMetadata


def is_script_path(path: str | Path) -> bool:
    return Path(path).suffix.lower() == ".py"


def find_icon(folder: Path, script_name: str) -> str | None:
    icon_dir = folder / ICON_DIR_NAME
    for candidate in (icon_dir / f"{script_name}.png", icon_dir / DEFAULT_ICON_NAME):
        if candidate.is_file():
            return str(candidate)
    return None


def build_script_item(
    path: str | Path,
    *,
    parse: Callable[[str | Path], ScriptMetadata] = parse_header_file,
) -> ScriptItem:
    script = Path(path)
    metadata = parse(script)
    return ScriptItem(
        name=script.stem,
        path=str(script),
        category=metadata.category or DEFAULT_CATEGORY,
        icon_path=find_icon(script.parent, script.stem),
        metadata=metadata,
    )


def scan_folder(folder: str | Path) -> list[ScriptItem]:
    root = Path(folder).expanduser()
    try:
        entries = sorted(root.iterdir(), key=lambda p: p.name.lower())
    except OSError:
        return []
    items: list[ScriptItem] = []
    for entry in entries:
        if not is_script_path(entry):
            continue
        try:
            if not entry.is_file():
                continue
        except OSError:
            continue
        items.append(build_script_item(entry))
    return items


def group_by_category(items: Iterable[ScriptItem]) -> ScriptGroups:
    groups: ScriptGroups = {}
    for item in items:
        groups.setdefault(item.category, []).append(item)
    return groups


def scan_folders(folders: Iterable[str]) -> ScriptGroups:
    items: list[ScriptItem] = []
    for folder in folders:
        items.extend(scan_folder(folder))
    return group_by_category(items)


def ordered_categories(groups: Mapping[str, list[ScriptItem]]) -> list[str]:
    named = sorted(cat for cat in groups if cat != DEFAULT_CATEGORY)
    if DEFAULT_CATEGORY in groups:
        named.append(DEFAULT_CATEGORY)
    return named


def filter_scripts(
    groups: Mapping[str, list[ScriptItem]],
    *,
    category: str = ALL_CATEGORIES,
    search: str = "",
) -> list[ScriptItem]:
    if not category or category == ALL_CATEGORIES:
        selected = [item for items in groups.values() for item in items]
    else:
        selected = list(groups.get(category, []))
    needle = (search or "").strip().lower()
    if needle:
        selected = [item for item in selected if needle in item.name.lower()]
    return sorted(selected, key=lambda item: item.name.lower())
