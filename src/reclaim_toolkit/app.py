import faulthandler
import sys

from PySide6.QtWidgets import QApplication

from reclaim_toolkit.gui.main_window import MainWindow


def run() -> None:
    faulthandler.enable()
    app = QApplication(sys.argv)
    app.setApplicationName("Reclaim Toolkit")

    w = MainWindow()
    w.show()

    raise SystemExit(app.exec())


if __name__ == "__main__":
    run()
