from __future__ import annotations

ERROR_COLOR = "#b23b3b"


def build_stylesheet() -> str:
    return """
        QMainWindow, QWidget#appRoot {
            background: #f1ede5;
        }
        QWidget {
            color: #26384f;
            font-size: 13px;
        }
        QLabel, QCheckBox {
            background: transparent;
        }
        #titleLabel {
            font-size: 28px;
            font-weight: 700;
            color: #4f7fda;
        }
        #subtleLabel {
            color: #6f839e;
        }
        #statusLine {
            color: #5a7394;
            padding: 6px 2px;
        }
        #statusLine[error="true"] {
            color: """ + ERROR_COLOR + """;
        }
        QGroupBox {
            border: 1px solid #d4ccbe;
            border-radius: 12px;
            margin-top: 18px;
            padding-top: 14px;
            background: #f6f2ea;
            font-weight: 700;
            color: #27425f;
        }
        QGroupBox::title {
            subcontrol-origin: margin;
            subcontrol-position: top left;
            left: 12px;
            padding: 0 5px;
            color: #24415f;
            background: #f1ede5;
            border-radius: 6px;
        }
        QLineEdit, QPlainTextEdit, QListWidget, QComboBox {
            background: #fcfaf6;
            border: 1px solid #c9c0b3;
            border-radius: 10px;
            padding: 6px 10px;
        }
        QLineEdit:focus, QPlainTextEdit:focus, QListWidget:focus, QComboBox:focus {
            border: 1px solid #7f9dcf;
            background: #ffffff;
        }
        QListWidget#categoryList {
            font-weight: 600;
        }
        QListWidget::item {
            padding: 4px 8px;
            border-radius: 8px;
        }
        QListWidget::item:hover {
            background: #e8edf6;
        }
        QListWidget::item:selected {
            background: #d8e4f7;
            color: #243d5c;
        }
        QPushButton {
            background: #e6eefb;
            color: #2c4569;
            border-radius: 10px;
            padding: 5px 14px;
            border: 1px solid #b9c7de;
            min-height: 30px;
            font-weight: 600;
        }
        QPushButton:hover {
            background: #eef4ff;
            border: 1px solid #a8b8d3;
        }
        QPushButton:pressed {
            background: #d8e4fb;
        }
        QPushButton:disabled {
            background: #ece8e0;
            color: #9ea5b1;
            border: 1px solid #d7d2c8;
        }
        QPushButton#runButton {
            background: #426db8;
            border: 1px solid #365890;
            color: #ffffff;
        }
        QCheckBox {
            color: #526b89;
            spacing: 8px;
        }
    """
