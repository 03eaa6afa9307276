# cmus_presence/ui/app.py
import sys

from PySide6.QtWidgets import QApplication

from ..config import Config, ConfigError
from ..log import configure_logging
from .main_window import MainWindow


def main():
    try:
        config = Config.load()
    except ConfigError as e:
        print(f"[cmus-presence] {e}", file=sys.stderr)
        sys.exit(1)
    configure_logging(config.verbose)

    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)
    win = MainWindow(config)
    win.show()
    app.aboutToQuit.connect(win._stop_worker)
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
