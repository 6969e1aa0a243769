"""
Application entry point and dark-theme stylesheet.

Usage:
    python -m profile_cropper.app [--owner ID] [--verbose]
    profile-cropper               (after pip install)
"""

import argparse
import logging
import sys

from PyQt6.QtWidgets import QApplication

from profile_cropper.main_window import MainWindow

DARK_STYLESHEET = """
    QMainWindow, QWidget { background: #25272b; color: #dcdfe4; font-size: 10pt; }
    QListWidget { background: #1b1d20; border: 1px solid #3d4148; }
    QListWidget::item { padding: 5px 6px; }
    QListWidget::item:selected { background: #2f6fb0; color: white; }
    QGroupBox { border: 1px solid #454a52; border-radius: 6px; margin-top: 10px; padding-top: 14px; font-weight: bold; }
    QGroupBox::title { subcontrol-origin: margin; left: 10px; padding: 0 4px; }
    QLabel#preview { background: #1b1d20; border-radius: 70px; }
    QPushButton { background: #34383e; border: 1px solid #4a4f57; border-radius: 6px; padding: 7px 14px; text-align: left; }
    QPushButton:hover { background: #3f444b; }
    QPushButton:pressed { background: #2a2d32; }
    QPushButton:disabled { color: #6b7078; border-color: #3a3e44; }
    QToolBar { background: #2d3035; border-bottom: 1px solid #3d4148; spacing: 6px; padding: 4px; }
    QStatusBar { background: #2d3035; border-top: 1px solid #3d4148; color: #aab0b8; }
"""


def main():
    parser = argparse.ArgumentParser(description="Crop a circular profile photo.")
    parser.add_argument("--owner", help="Owner id whose stored original should be reopened")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args, qt_args = parser.parse_known_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication([sys.argv[0], *qt_args])
    app.setStyleSheet(DARK_STYLESHEET)

    window = MainWindow(owner_id=args.owner)
    window.show()

    try:
        sys.exit(app.exec())
    except (SystemExit, KeyboardInterrupt):
        pass


if __name__ == "__main__":
    main()
