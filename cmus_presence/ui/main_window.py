# cmus_presence/ui/main_window.py
import time
from pathlib import Path

from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QGuiApplication, QIcon
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QLabel, QPushButton, QFrame, QMenu, QSystemTrayIcon
)

from ..config import Config
from .worker import PresenceWorker

PRIMARY = "#7289da"
BG = "#6b7cc8"


class MainWindow(QMainWindow):
    def __init__(self, config: Config):
        super().__init__()

        self.setWindowTitle("cmus presence")
        self.setFixedSize(460, 360)

        self.config = config
        self.worker = None
        self._end = None
        self._tray = None
        self._icon = self._load_app_icon()
        self._force_quit = False

        root = QWidget()
        root.setObjectName("Root")
        layout = QVBoxLayout(root)
        layout.setAlignment(Qt.AlignTop)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(16)

        layout.addWidget(self._build_account_card())
        layout.addWidget(self._build_now_card())

        row = QWidget()
        rl = QHBoxLayout(row)
        rl.setContentsMargins(0, 0, 0, 0)
        self.toggle_btn = QPushButton("Start")
        self.toggle_btn.setObjectName("ToggleButton")
        self.toggle_btn.setCursor(Qt.PointingHandCursor)
        self.toggle_btn.clicked.connect(self._on_toggle_clicked)
        rl.addWidget(self.toggle_btn)
        layout.addWidget(row)

        self.status_line = QLabel("Idle")
        self.status_line.setObjectName("StatusLine")
        self.status_line.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.status_line)

        self.setCentralWidget(root)
        self._apply_styles()
        self._init_tray()
        if self._icon:
            self.setWindowIcon(self._icon)

        # ticks the "time left" label between polls
        self._timer = QTimer(self)
        self._timer.setInterval(1000)
        self._timer.timeout.connect(self._update_time_left)
        self._timer.start()

    # ==================================================
    # CARDS
    # ==================================================

    def _build_account_card(self):
        account = QFrame()
        account.setObjectName("AccountCard")
        av = QVBoxLayout(account)
        av.setContentsMargins(20, 18, 20, 18)
        av.setSpacing(4)

        self.acc_title = QLabel("Not connected")
        self.acc_title.setObjectName("AccountName")

        acc_sub = QLabel("Discord account")
        acc_sub.setObjectName("Muted")

        av.addWidget(self.acc_title)
        av.addWidget(acc_sub)
        return account

    def _build_now_card(self):
        now = QFrame()
        now.setObjectName("PlayingCard")
        nv = QVBoxLayout(now)
        nv.setContentsMargins(26, 22, 26, 22)
        nv.setSpacing(8)

        self.d_details = QLabel("Stopped")
        self.d_details.setObjectName("Muted")
        self.d_details.setAlignment(Qt.AlignCenter)

        self.d_state = QLabel("Nothing playing")
        self.d_state.setObjectName("StateLine")
        self.d_state.setWordWrap(True)
        self.d_state.setAlignment(Qt.AlignCenter)

        self.d_time_left = QLabel("")
        self.d_time_left.setObjectName("TimeLeft")
        self.d_time_left.setAlignment(Qt.AlignCenter)

        nv.addWidget(self.d_details)
        nv.addWidget(self.d_state)
        nv.addWidget(self.d_time_left)
        return now

    # ==================================================
    # WORKER HOOKUP
    # ==================================================

    def _on_toggle_clicked(self):
        if self.worker:
            self._stop_worker()
            self.toggle_btn.setText("Start")
            self.status_line.setText("Idle")
        else:
            self._start_worker()
            self.toggle_btn.setText("Stop")

    def _start_worker(self):
        if self.worker:
            return

        self.worker = PresenceWorker(self.config, parent=self)
        self.worker.status.connect(self._on_worker_status)
        self.worker.account.connect(self._on_account)
        self.worker.activity.connect(self._on_activity)
        self.worker.start()

    def _on_worker_status(self, msg: str):
        self.status_line.setText(msg)

    def _on_account(self, name: str):
        self.acc_title.setText(name or "Connected")

    def _on_activity(self, payload: dict):
        self.d_details.setText(payload.get("details") or "")
        self.d_state.setText(payload.get("state") or "—")
        self._end = payload.get("end")
        self._update_time_left()

    def _format_time(self, seconds: float) -> str:
        total = max(0, int(seconds))
        return f"{total // 60}:{total % 60:02d}"

    def _update_time_left(self):
        if self._end is None:
            self.d_time_left.setText("")
            return
        self.d_time_left.setText(f"-{self._format_time(self._end - time.time())}")

    # ==================================================
    # TRAY
    # ==================================================

    def closeEvent(self, event):
        # Minimize to tray if available
        if self._tray and self._tray.isVisible() and not self._force_quit:
            self.hide()
            event.ignore()
            return

        self._stop_worker()
        event.accept()
        app = QGuiApplication.instance()
        if app:
            app.quit()

    def _init_tray(self):
        if not QSystemTrayIcon.isSystemTrayAvailable():
            return

        tray = QSystemTrayIcon(self)
        tray.setToolTip("cmus presence")
        if self._icon:
            tray.setIcon(self._icon)

        menu = QMenu()
        action_show = menu.addAction("Show")
        action_quit = menu.addAction("Quit")

        action_show.triggered.connect(self._show_from_tray)
        action_quit.triggered.connect(self._quit_from_tray)
        tray.activated.connect(self._on_tray_activated)

        tray.setContextMenu(menu)
        tray.show()
        self._tray = tray

    def _on_tray_activated(self, reason):
        if reason == QSystemTrayIcon.Trigger:
            self._show_from_tray()

    def _show_from_tray(self):
        self.show()
        self.raise_()
        self.activateWindow()

    def _quit_from_tray(self):
        self._force_quit = True
        self._stop_worker()
        app = QGuiApplication.instance()
        if app:
            app.quit()
        else:
            self.close()

    def _load_app_icon(self):
        icon_path = Path(__file__).resolve().parent / "logo.png"
        if icon_path.exists():
            return QIcon(str(icon_path))
        return None

    def _stop_worker(self):
        if not self.worker:
            return
        self.worker.stop()
        if self.worker.isRunning():
            self.worker.wait(2000)
        self.worker = None
        self._end = None

    # ==================================================
    # STYLES
    # ==================================================

    def _apply_styles(self):
        cards = "background-color: rgba(255,255,255,{alpha}); border-radius: {radius}px;"
        rules = {
            "QWidget": "color: white; font-family: Inter, Arial;",
            "QWidget#Root": f"background-color: {BG};",
            "QFrame#AccountCard": cards.format(alpha="0.10", radius=22),
            "QFrame#PlayingCard": cards.format(alpha="0.26", radius=32),
            "QLabel#AccountName": "font-size: 18px; font-weight: 800;",
            "QLabel#Muted": "font-size: 13px; color: rgba(255,255,255,0.70);",
            "QLabel#StateLine": "font-size: 18px; font-weight: 900;",
            "QLabel#TimeLeft": "font-size: 11px; color: rgba(255,255,255,0.75);",
            "QLabel#StatusLine": "font-size: 11px; color: rgba(255,255,255,0.70);",
            "QPushButton#ToggleButton": (
                f"background-color: white; color: {PRIMARY}; border-radius: 16px;"
                " padding: 12px; font-size: 15px; font-weight: 800;"
            ),
        }
        self.setStyleSheet("\n".join(f"{sel} {{ {body} }}" for sel, body in rules.items()))
