from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import cast

from .core import catalog as core_catalog
from .core import header as core_header
from .core.run_state import RunState
from .services import app_service
from .settings_store import SettingsStore

EXIT_USAGE = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m pyquickbox",
        description="Launch Python scripts using #pqr header directives.",
    )
    parser.add_argument("--config", help="Path of the settings JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("gui", help="Open the launcher window (default)")

    run = sub.add_parser("run", help="Resolve and run one or more scripts")
    run.add_argument("scripts", nargs="+", help="Python scripts to run")
    mode = run.add_mutually_exclusive_group()
    mode.add_argument(
        "--terminal",
        dest="terminal",
        action="store_const",
        const=True,
        default=None,
        help="Default to a terminal window when the header does not say",
    )
    mode.add_argument(
        "--background",
        dest="terminal",
        action="store_const",
        const=False,
        help="Default to a background run when the header does not say",
    )
    run.add_argument("--python", help="Interpreter used when the header names none")

    listing = sub.add_parser("list", help="List scripts in registered folders")
    listing.add_argument("--category", default=core_catalog.ALL_CATEGORIES)
    listing.add_argument("--search", default="")

    header = sub.add_parser("header", help="Show the parsed #pqr header of a script")
    header.add_argument("script")

    folders = sub.add_parser("folders", help="Manage registered folders")
    folders.add_argument("action", choices=("show", "add", "remove"))
    folders.add_argument("path", nargs="?")

    config = sub.add_parser("config", help="Show or change default settings")
    config.add_argument("--python", help="Default interpreter path")
    config.add_argument(
        "--terminal",
        choices=("true", "false"),
        help="Run scripts in a terminal window by default",
    )
    return parser


def _run_qt(service: app_service.LauncherService) -> int:
    try:
        from . import qt_app
    except ModuleNotFoundError as exc:
        missing = str(getattr(exc, "name", "") or "")
        if missing.startswith("PySide6"):
            sys.stderr.write(
                "PySide6 is not installed. Install app dependencies and retry:\n"
                "  pip install -e .\n"
            )
            return EXIT_USAGE
        raise
    return int(qt_app.main(service))


def _run_scripts(
    service: app_service.LauncherService,
    scripts: Sequence[str],
    *,
    terminal: bool | None,
    python_path: str | None,
) -> int:
    rc = 0
    for script in scripts:
        # Blocking launches always return their outcome.
        outcome = cast(
            app_service.LaunchOutcome,
            service.launch(
                script,
                blocking=True,
                default_terminal=terminal,
                python_path=python_path,
            ),
        )
        if outcome.result is not None and outcome.result["stdout"]:
            sys.stdout.write(outcome.result["stdout"])
        if outcome.result is not None and outcome.result["stderr"]:
            sys.stderr.write(outcome.result["stderr"])
        line = app_service.record_outcome_line(outcome)
        if outcome.state is RunState.FAILED:
            logging.error("%s - %s", line, outcome.message)
            if rc == 0:
                rc = outcome.result["returncode"] if outcome.result else EXIT_USAGE
        else:
            logging.info(line)
    return rc


def _list_scripts(service: app_service.LauncherService, category: str, search: str) -> int:
    service.refresh()
    for cat in service.categories():
        if category not in ("", core_catalog.ALL_CATEGORIES) and cat != category:
            continue
        items = service.scripts(cat, search)
        if not items:
            continue
        print(f"[{cat}]")
        for item in items:
            print(f"  {item.name}\t{item.path}")
    return 0


def _show_header(script: str) -> int:
    metadata = core_header.parse_header_file(script)
    print(f"category={metadata.category}")
    for tag in (*core_header.PLATFORM_TAGS, core_header.DEFAULT_TAG):
        value = metadata.interpreter_by_platform.get(tag)
        if value:
            print(f"{tag}={value}")
    if metadata.terminal_override is not None:
        print(f"term={'true' if metadata.terminal_override else 'false'}")
    return 0


def _manage_folders(
    service: app_service.LauncherService, action: str, path: str | None
) -> int:
    if action == "show":
        for folder in service.settings.folders:
            print(folder)
        return 0
    if not path:
        sys.stderr.write(f"folders {action} needs a path\n")
        return EXIT_USAGE
    if action == "add":
        if not service.add_folder(path) and not Path(path).expanduser().is_dir():
            sys.stderr.write(f"{service.status}\n")
            return EXIT_USAGE
        return 0
    if not service.remove_folder(path):
        sys.stderr.write(f"Folder is not registered: {path}\n")
        return EXIT_USAGE
    return 0


def _configure(
    service: app_service.LauncherService, python_path: str | None, terminal: str | None
) -> int:
    if python_path is not None:
        service.set_python_path(python_path)
    if terminal is not None:
        service.set_use_terminal(terminal == "true")
    settings = service.settings
    print(f"python_path={settings.python_path}")
    print(f"use_terminal={'true' if settings.use_terminal else 'false'}")
    print(f"close_on_success={'true' if settings.close_on_success else 'false'}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )
    service = app_service.LauncherService(SettingsStore(args.config))

    if args.command == "run":
        return _run_scripts(
            service, args.scripts, terminal=args.terminal, python_path=args.python
        )
    if args.command == "list":
        return _list_scripts(service, args.category, args.search)
    if args.command == "header":
        return _show_header(args.script)
    if args.command == "folders":
        return _manage_folders(service, args.action, args.path)
    if args.command == "config":
        return _configure(service, args.python, args.terminal)
    return _run_qt(service)
