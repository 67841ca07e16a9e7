from __future__ import annotations

import signal
from pathlib import Path

from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QCloseEvent, QDragEnterEvent, QDropEvent
from PySide6.QtWidgets import (
    QApplication,
    QCheckBox,
    QFileDialog,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QPlainTextEdit,
    QPushButton,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from .core import catalog as core_catalog
from .core.run_state import RunState
from .qt import style as qt_style
from .qt_widgets import ScriptPropertiesDialog, _QtSignals
from .services import app_service
from .settings_store import SettingsStore

CLOSE_AFTER_SUCCESS_MS = 1000
PATH_ROLE = Qt.ItemDataRole.UserRole


class QtLauncherWindow(QMainWindow):
    def __init__(self, service: app_service.LauncherService) -> None:
        super().__init__()
        self.setWindowTitle("PyQuickBox")
        self.resize(900, 640)
        self.setAcceptDrops(True)
        self.service = service

        self._signals = _QtSignals()
        self._signals.service_event.connect(self._on_service_event)
        self._signals.launch_done.connect(self._on_launch_done)
        # Service notifications may come from worker threads.
        self._unsubscribe = service.subscribe(self._signals.service_event.emit)

        self._current_category = core_catalog.ALL_CATEGORIES

        self._build_ui()
        self._load_settings_into_controls()
        self.service.refresh()
        self._set_status(self.service.status)

    def _build_ui(self) -> None:
        root = QWidget(self)
        root.setObjectName("appRoot")
        self.setCentralWidget(root)
        root_layout = QVBoxLayout(root)
        root_layout.setContentsMargins(16, 14, 16, 14)
        root_layout.setSpacing(10)

        title = QLabel("PyQuickBox", root)
        title.setObjectName("titleLabel")
        subtitle = QLabel("Drop a .py file to run it, or a folder to register it.", root)
        subtitle.setObjectName("subtleLabel")
        root_layout.addWidget(title)
        root_layout.addWidget(subtitle)

        top_bar = QHBoxLayout()
        self.search_edit = QLineEdit(root)
        self.search_edit.setPlaceholderText("Search...")
        self.search_edit.textChanged.connect(self._refresh_script_list)
        self.refresh_button = QPushButton("Refresh", root)
        self.refresh_button.clicked.connect(self.service.refresh)
        top_bar.addWidget(self.search_edit, 1)
        top_bar.addWidget(self.refresh_button)
        root_layout.addLayout(top_bar)

        splitter = QSplitter(Qt.Orientation.Horizontal, root)
        self.category_list = QListWidget(splitter)
        self.category_list.setObjectName("categoryList")
        self.category_list.currentTextChanged.connect(self._on_category_changed)
        self.script_list = QListWidget(splitter)
        self.script_list.setObjectName("scriptList")
        self.script_list.itemDoubleClicked.connect(self._on_script_activated)
        self.script_list.currentItemChanged.connect(lambda *_: self._update_controls_state())
        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 3)
        root_layout.addWidget(splitter, 1)

        actions = QHBoxLayout()
        self.run_button = QPushButton("Run", root)
        self.run_button.setObjectName("runButton")
        self.run_button.clicked.connect(self._run_selected)
        self.properties_button = QPushButton("Properties", root)
        self.properties_button.clicked.connect(self._edit_selected_properties)
        self.reveal_button = QPushButton("Open Location", root)
        self.reveal_button.clicked.connect(self._reveal_selected)
        self.open_button = QPushButton("Open Script...", root)
        self.open_button.clicked.connect(self._pick_and_run_script)
        for button in (self.run_button, self.properties_button, self.reveal_button):
            actions.addWidget(button)
        actions.addStretch(1)
        actions.addWidget(self.open_button)
        root_layout.addLayout(actions)

        root_layout.addWidget(self._build_settings_section(root))

        self.status_label = QLabel("", root)
        self.status_label.setObjectName("statusLine")
        self.status_label.setWordWrap(True)
        self.status_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        root_layout.addWidget(self.status_label)

        self.log_view = QPlainTextEdit(root)
        self.log_view.setReadOnly(True)
        self.log_view.setMaximumHeight(120)
        root_layout.addWidget(self.log_view)

        self.setStyleSheet(qt_style.build_stylesheet())

    def _build_settings_section(self, parent: QWidget) -> QGroupBox:
        section = QGroupBox("Settings", parent)
        layout = QVBoxLayout(section)

        interp_row = QHBoxLayout()
        interp_row.addWidget(QLabel("Interpreter:", section))
        self.python_edit = QLineEdit(section)
        self.python_edit.setPlaceholderText("/usr/bin/python3")
        self.python_edit.editingFinished.connect(
            lambda: self.service.set_python_path(self.python_edit.text())
        )
        self.browse_button = QPushButton("Binary...", section)
        self.browse_button.clicked.connect(self._browse_interpreter)
        self.project_button = QPushButton("Project...", section)
        self.project_button.clicked.connect(self._pick_project_folder)
        interp_row.addWidget(self.python_edit, 1)
        interp_row.addWidget(self.browse_button)
        interp_row.addWidget(self.project_button)
        layout.addLayout(interp_row)

        checks = QHBoxLayout()
        self.terminal_check = QCheckBox("Run in Terminal window", section)
        self.terminal_check.toggled.connect(self.service.set_use_terminal)
        self.close_check = QCheckBox("Close window after success", section)
        self.close_check.toggled.connect(self.service.set_close_on_success)
        checks.addWidget(self.terminal_check)
        checks.addWidget(self.close_check)
        checks.addStretch(1)
        layout.addLayout(checks)

        folders_row = QHBoxLayout()
        self.folder_list = QListWidget(section)
        self.folder_list.setMaximumHeight(90)
        folder_buttons = QVBoxLayout()
        self.add_folder_button = QPushButton("Add Folder...", section)
        self.add_folder_button.clicked.connect(self._pick_folder)
        self.remove_folder_button = QPushButton("Remove", section)
        self.remove_folder_button.clicked.connect(self._remove_selected_folder)
        folder_buttons.addWidget(self.add_folder_button)
        folder_buttons.addWidget(self.remove_folder_button)
        folder_buttons.addStretch(1)
        folders_row.addWidget(self.folder_list, 1)
        folders_row.addLayout(folder_buttons)
        layout.addLayout(folders_row)
        return section

    # -- service bridge ------------------------------------------------------

    def _on_service_event(self, event: str) -> None:
        if event == app_service.EVENT_SCRIPTS:
            self._refresh_categories()
        elif event == app_service.EVENT_SETTINGS:
            self._refresh_folder_list()
        elif event == app_service.EVENT_STATUS:
            self._set_status(self.service.status)
        elif event == app_service.EVENT_LOG:
            self._refresh_log()
        elif event == app_service.EVENT_RUN_STATE:
            self._update_controls_state()

    def _on_launch_done(self, outcome: object) -> None:
        if not isinstance(outcome, app_service.LaunchOutcome):
            return
        self._set_status(outcome.message, is_error=outcome.state is RunState.FAILED)
        self._update_controls_state()
        if outcome.succeeded and self.service.settings.close_on_success:
            QTimer.singleShot(CLOSE_AFTER_SUCCESS_MS, self.close)

    def _load_settings_into_controls(self) -> None:
        settings = self.service.settings
        self.python_edit.setText(settings.python_path)
        for check, value in (
            (self.terminal_check, settings.use_terminal),
            (self.close_check, settings.close_on_success),
        ):
            check.blockSignals(True)
            check.setChecked(value)
            check.blockSignals(False)
        self._refresh_folder_list()

    def _refresh_folder_list(self) -> None:
        self.folder_list.clear()
        self.folder_list.addItems(self.service.settings.folders)
        if self.python_edit.text() != self.service.settings.python_path:
            self.python_edit.setText(self.service.settings.python_path)

    def _refresh_categories(self) -> None:
        names = [core_catalog.ALL_CATEGORIES, *self.service.categories()]
        if self._current_category not in names:
            self._current_category = core_catalog.ALL_CATEGORIES
        self.category_list.blockSignals(True)
        self.category_list.clear()
        self.category_list.addItems(names)
        self.category_list.setCurrentRow(names.index(self._current_category))
        self.category_list.blockSignals(False)
        self._refresh_script_list()

    def _refresh_script_list(self) -> None:
        self.script_list.clear()
        for item in self.service.scripts(self._current_category, self.search_edit.text()):
            row = QListWidgetItem(item.name)
            row.setToolTip(f"{item.path}\nCategory: {item.category}")
            row.setData(PATH_ROLE, item.path)
            self.script_list.addItem(row)
        self._update_controls_state()

    def _refresh_log(self) -> None:
        self.log_view.setPlainText("\n".join(self.service.log_lines()))
        scrollbar = self.log_view.verticalScrollBar()
        scrollbar.setValue(scrollbar.maximum())

    def _set_status(self, message: str, *, is_error: bool | None = None) -> None:
        if is_error is None:
            is_error = message.startswith(("Error", "Failed"))
        self.status_label.setText(message)
        self.status_label.setProperty("error", "true" if is_error else "false")
        self.status_label.style().unpolish(self.status_label)
        self.status_label.style().polish(self.status_label)

    def _update_controls_state(self) -> None:
        path = self._selected_script_path()
        has_selection = path is not None
        self.run_button.setEnabled(has_selection)
        self.properties_button.setEnabled(has_selection)
        self.reveal_button.setEnabled(has_selection)
        self.remove_folder_button.setEnabled(self.folder_list.count() > 0)

    # -- actions -------------------------------------------------------------

    def _selected_script_path(self) -> str | None:
        item = self.script_list.currentItem()
        if item is None:
            return None
        return str(item.data(PATH_ROLE))

    def _on_category_changed(self, name: str) -> None:
        self._current_category = name or core_catalog.ALL_CATEGORIES
        self._refresh_script_list()

    def _on_script_activated(self, item: QListWidgetItem) -> None:
        self._launch(str(item.data(PATH_ROLE)))

    def _launch(self, script_path: str) -> None:
        self.service.launch(script_path, on_done=self._signals.launch_done.emit)

    def _run_selected(self) -> None:
        path = self._selected_script_path()
        if path:
            self._launch(path)

    def _reveal_selected(self) -> None:
        path = self._selected_script_path()
        if path and not self.service.reveal(path):
            self._set_status(f"Error: Could not open {Path(path).parent}", is_error=True)

    def _edit_selected_properties(self) -> None:
        path = self._selected_script_path()
        if not path:
            return
        dialog = ScriptPropertiesDialog(Path(path).stem, self.service.metadata_for(path), self)
        if dialog.exec():
            self.service.save_metadata(path, dialog.edited_metadata())

    def _pick_and_run_script(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self, "Select Python Script", "", "Python scripts (*.py);;All files (*)"
        )
        if path:
            self._launch(path)

    def _browse_interpreter(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Select Python Interpreter")
        if path:
            self.service.set_python_path(path)

    def _pick_project_folder(self) -> None:
        folder = QFileDialog.getExistingDirectory(self, "Select Project Folder")
        if folder:
            self.service.adopt_project_folder(folder)

    def _pick_folder(self) -> None:
        folder = QFileDialog.getExistingDirectory(self, "Add Script Folder")
        if folder:
            self.service.add_folder(folder)

    def _remove_selected_folder(self) -> None:
        item = self.folder_list.currentItem()
        if item is not None:
            self.service.remove_folder(item.text())

    # -- drag and drop -------------------------------------------------------

    def dragEnterEvent(self, event: QDragEnterEvent) -> None:
        if event.mimeData().hasUrls():
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event: QDropEvent) -> None:
        paths = [url.toLocalFile() for url in event.mimeData().urls() if url.isLocalFile()]
        if not paths:
            event.ignore()
            return
        self.service.handle_drop(paths, on_done=self._signals.launch_done.emit)
        event.acceptProposedAction()

    def closeEvent(self, event: QCloseEvent) -> None:
        self.service.set_python_path(self.python_edit.text())
        self._unsubscribe()
        super().closeEvent(event)


def main(service: app_service.LauncherService | None = None) -> int:
    app = QApplication.instance()
    owns_app = app is None
    if app is None:
        app = QApplication([])
    assert app is not None
    sigint_pump: QTimer | None = None

    # Ensure Ctrl+C from a terminal cleanly exits the Qt event loop.
    if hasattr(signal, "SIGINT"):
        signal.signal(signal.SIGINT, lambda _sig, _frame: app.quit())
        sigint_pump = QTimer()
        sigint_pump.setInterval(100)
        sigint_pump.timeout.connect(lambda: None)
        sigint_pump.start()

    window = QtLauncherWindow(service or app_service.LauncherService(SettingsStore()))
    setattr(window, "_sigint_pump", sigint_pump)
    window.show()
    if owns_app:
        return int(app.exec())
    return 0
