from __future__ import annotations

from PySide6.QtCore import QObject, Signal
from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLineEdit,
    QWidget,
)

from .core.header import DEFAULT_CATEGORY, DEFAULT_TAG, ScriptMetadata


class _QtSignals(QObject):
    service_event = Signal(str)
    launch_done = Signal(object)


TERMINAL_CHOICES = (
    ("Use launcher setting", None),
    ("Terminal window", True),
    ("Background", False),
)


class ScriptPropertiesDialog(QDialog):
    """Edits the ``#pqr`` header of one script."""

    def __init__(self, name: str, metadata: ScriptMetadata, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle(f"Properties - {name}")
        self._metadata = metadata

        layout = QFormLayout(self)
        self.category_edit = QLineEdit(metadata.category, self)
        self.mac_edit = QLineEdit(metadata.interpreter_for("mac"), self)
        self.win_edit = QLineEdit(metadata.interpreter_for("win"), self)
        self.linux_edit = QLineEdit(metadata.interpreter_for("linux"), self)
        self.default_edit = QLineEdit(metadata.default_interpreter, self)
        self.terminal_combo = QComboBox(self)
        for label, value in TERMINAL_CHOICES:
            self.terminal_combo.addItem(label, value)
        for idx, (_label, value) in enumerate(TERMINAL_CHOICES):
            if value is metadata.terminal_override:
                self.terminal_combo.setCurrentIndex(idx)

        layout.addRow("Category", self.category_edit)
        layout.addRow("macOS interpreter", self.mac_edit)
        layout.addRow("Windows interpreter", self.win_edit)
        layout.addRow("Linux interpreter", self.linux_edit)
        layout.addRow("Default interpreter", self.default_edit)
        layout.addRow("Run mode", self.terminal_combo)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Save | QDialogButtonBox.StandardButton.Cancel,
            parent=self,
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addRow(buttons)

    def edited_metadata(self) -> ScriptMetadata:
        metadata = ScriptMetadata(
            category=self.category_edit.text().strip() or DEFAULT_CATEGORY,
            terminal_override=TERMINAL_CHOICES[self.terminal_combo.currentIndex()][1],
        )
        for tag, edit in (
            ("mac", self.mac_edit),
            ("win", self.win_edit),
            ("linux", self.linux_edit),
            (DEFAULT_TAG, self.default_edit),
        ):
            metadata = metadata.with_interpreter(tag, edit.text())
        return metadata
