"""Read and write ``#pqr`` launcher directives embedded in script headers.

Two grammars are understood::

    #pqr cat=Tools; mac=/opt/homebrew/bin/python3; term=true
    #pqr cat "Tools"
    #pqr terminal true

A line holding an ``=`` is always read with the key/value grammar; the legacy
quoted grammar only applies to lines without one. Parsing never raises.
"""

from __future__ import annotations

import itertools
import os
import re
import shutil
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

DIRECTIVE_MARKER = "#pqr"
HEADER_SCAN_LINES = 20
DEFAULT_CATEGORY = "Uncategorized"
BOM = "\ufeff"

PLATFORM_TAGS = ("mac", "win", "linux")
DEFAULT_TAG = "default"

TRUE_TOKENS = frozenset({"true", "1", "yes", "y"})
FALSE_TOKENS = frozenset({"false", "0", "no", "n"})

# Directive keys mapped to interpreter platform tags.
_INTERPRETER_KEYS = {
    "mac": "mac",
    "win": "win",
    "linux": "linux",
    "ubuntu": "linux",
    "def": DEFAULT_TAG,
}


@dataclass(frozen=True)
class ScriptMetadata:
    category: str = DEFAULT_CATEGORY
    interpreter_by_platform: Mapping[str, str] = field(default_factory=dict)
    terminal_override: bool | None = None

    def interpreter_for(self, platform_tag: str) -> str:
        return self.interpreter_by_platform.get(platform_tag, "")

    @property
    def default_interpreter(self) -> str:
        return self.interpreter_by_platform.get(DEFAULT_TAG, "")

    def with_interpreter(self, platform_tag: str, path: str) -> ScriptMetadata:
        interpreters = dict(self.interpreter_by_platform)
        clean = (path or "").strip()
        if clean:
            interpreters[platform_tag] = clean
        else:
            interpreters.pop(platform_tag, None)
        return replace(self, interpreter_by_platform=interpreters)


def parse_bool_token(value: str) -> bool | None:
    token = (value or "").strip().lower()
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    return None


def is_directive_line(line: str) -> bool:
    return line.strip().lower().startswith(DIRECTIVE_MARKER)


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1].strip()
    return value


def _quoted_value(line: str) -> str | None:
    first = line.find('"')
    last = line.rfind('"')
    if first < 0 or last <= first:
        return None
    return line[first + 1 : last]


class _HeaderState:
    def __init__(self) -> None:
        self.category = DEFAULT_CATEGORY
        self.interpreters: dict[str, str] = {}
        self.terminal_override: bool | None = None

    def set_field(self, key: str, value: str) -> None:
        if key == "cat":
            if value:
                self.category = value
        elif key in _INTERPRETER_KEYS:
            if value:
                self.interpreters[_INTERPRETER_KEYS[key]] = value
        elif key == "term":
            parsed = parse_bool_token(value)
            if parsed is not None:
                self.terminal_override = parsed

    def apply_key_value_line(self, body: str) -> None:
        for part in body.split(";"):
            key, sep, value = part.partition("=")
            if not sep:
                continue
            self.set_field(key.strip().lower(), _strip_quotes(value.strip()))

    def apply_legacy_line(self, line: str, body: str) -> None:
        if "terminal true" in line.lower():
            self.terminal_override = True
            return
        pieces = re.split(r"\s+", body, maxsplit=1)
        key = pieces[0].lower()
        rest = pieces[1].strip() if len(pieces) > 1 else ""
        if key not in _INTERPRETER_KEYS and key != "cat":
            return
        if key in PLATFORM_TAGS + ("ubuntu",) and rest.lower() == "terminal":
            # "#pqr linux terminal" forces a terminal on that launcher.
            self.terminal_override = True
            return
        if '"' in rest:
            value = _quoted_value(line)
            if value is None:
                return
        else:
            value = rest
        self.set_field(key, value.strip())

    def apply(self, raw_line: str) -> None:
        line = raw_line.strip().lstrip(BOM).strip()
        if not line.lower().startswith(DIRECTIVE_MARKER):
            return
        body = line[len(DIRECTIVE_MARKER) :].strip()
        if "=" in line:
            self.apply_key_value_line(body)
        else:
            self.apply_legacy_line(line, body)

    def metadata(self) -> ScriptMetadata:
        return ScriptMetadata(
            category=self.category,
            interpreter_by_platform=dict(self.interpreters),
            terminal_override=self.terminal_override,
        )


def parse_header_lines(lines: Iterable[str]) -> ScriptMetadata:
    state = _HeaderState()
    for line in itertools.islice(lines, HEADER_SCAN_LINES):
        state.apply(line)
    return state.metadata()


def parse_header_text(text: str) -> ScriptMetadata:
    return parse_header_lines((text or "").splitlines())


def parse_header_file(path: str | Path) -> ScriptMetadata:
    """Parse the directive header of *path*; unreadable files give defaults."""
    try:
        with Path(path).open("r", encoding="utf-8-sig", errors="replace") as handle:
            head = list(itertools.islice(handle, HEADER_SCAN_LINES))
    except (OSError, ValueError):
        return ScriptMetadata()
    return parse_header_lines(head)


def format_header_line(metadata: ScriptMetadata) -> str:
    fields = [
        f"cat={metadata.category or DEFAULT_CATEGORY}",
        f"mac={metadata.interpreter_for('mac')}",
        f"win={metadata.interpreter_for('win')}",
        f"linux={metadata.interpreter_for('linux')}",
    ]
    if metadata.default_interpreter:
        fields.append(f"def={metadata.default_interpreter}")
    if metadata.terminal_override is not None:
        fields.append(f"term={'true' if metadata.terminal_override else 'false'}")
    return f"{DIRECTIVE_MARKER} " + "; ".join(fields)


def update_header_text(text: str, metadata: ScriptMetadata) -> str:
    """Return *text* with its directive lines replaced by one for *metadata*.

    The first directive within the scanned header is replaced in place and any
    later ones in the header are dropped. Without a directive the new line goes
    right after a shebang, or at the very top.
    """
    new_line = format_header_line(metadata)
    text = text or ""
    bom = BOM if text.startswith(BOM) else ""
    body = text[len(bom) :]
    eol = "\r\n" if "\r\n" in body else "\n"
    lines = body.split(eol)
    out: list[str] = []
    found = False
    for idx, line in enumerate(lines):
        if idx < HEADER_SCAN_LINES and is_directive_line(line):
            if not found:
                out.append(new_line)
                found = True
            continue
        out.append(line)
    if not found:
        insert_at = 1 if out and out[0].strip().startswith("#!") else 0
        out.insert(insert_at, new_line)
    return bom + eol.join(out)


def write_script_metadata(path: str | Path, metadata: ScriptMetadata) -> None:
    """Rewrite the header of *path* in place, keeping BOM and line endings."""
    target = Path(path)
    with target.open("r", encoding="utf-8", newline="") as handle:
        text = handle.read()
    tmp_path = target.with_name(f".{target.name}.tmp")
    try:
        with tmp_path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(update_header_text(text, metadata))
        shutil.copymode(target, tmp_path)
        os.replace(tmp_path, target)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
