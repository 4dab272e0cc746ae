"""
Application entry point and dark-theme stylesheet.

Usage:
    python -m print_crop_tool.app
    print-crop-tool          (after pip install)
"""

import logging
import sys

from PyQt6.QtWidgets import QApplication

from print_crop_tool.main_window import MainWindow

DARK_STYLESHEET = """
    QMainWindow, QWidget { background: #262626; color: #e0e0e0; font-size: 10pt; }
    QGroupBox { border: 1px solid #4d4d4d; border-radius: 4px; margin-top: 10px; padding-top: 12px; font-weight: bold; }
    QGroupBox::title { subcontrol-origin: margin; left: 8px; padding: 0 4px; }
    QPushButton { background: #384048; border: 1px solid #55606b; border-radius: 4px; padding: 6px 12px; }
    QPushButton:hover { background: #46505a; }
    QPushButton:disabled { color: #6a6a6a; border-color: #444; }
    QComboBox, QSpinBox { background: #333; border: 1px solid #555; border-radius: 3px; padding: 2px 6px; }
    QToolBar { background: #2f2f2f; border-bottom: 1px solid #444; spacing: 4px; padding: 4px; }
    QToolButton:checked { background: #8b5a2b; border-radius: 4px; }
    QToolButton:disabled { color: #666; }
    QStatusBar { background: #2f2f2f; border-top: 1px solid #444; }
"""


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    app = QApplication(sys.argv)
    app.setStyleSheet(DARK_STYLESHEET)

    window = MainWindow()
    window.show()

    try:
        sys.exit(app.exec())
    except (SystemExit, KeyboardInterrupt):
        pass


if __name__ == "__main__":
    main()
