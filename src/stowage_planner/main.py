import logging
from logging.handlers import TimedRotatingFileHandler
import sys
import traceback
from pathlib import Path

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QApplication, QMessageBox

from stowage_planner.core import presets as preset_io
from stowage_planner.core.session import StowageSession
from stowage_planner.core.store import JsonDocumentStore, StoreError, default_store_path

# --------------------------------------------------------------------------- #
# Global logger (einzige erlaubte globale Variable)
# --------------------------------------------------------------------------- #
logger = logging.getLogger("stowage_planner")


# --------------------------------------------------------------------------- #
# Hilfsfunktionen
# --------------------------------------------------------------------------- #
def _setup_logging() -> None:
    """Initialisiert Rotating-Logfile logs/error.log (Retention 7 Tage)."""
    base_dir = Path(sys.executable).parent if getattr(sys, "frozen", False) else Path(__file__).parent
    log_dir = base_dir / "logs"
    log_dir.mkdir(exist_ok=True)

    handler = TimedRotatingFileHandler(
        log_dir / "error.log",
        when="D",
        interval=1,
        backupCount=7,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))

    logger.setLevel(logging.DEBUG)
    logger.addHandler(handler)
    logger.propagate = False


def _install_exception_hook() -> None:
    """Schreibt unbehandelte Exceptions ins Log und zeigt einen Dialog an."""
    def _handler(exc_type, exc_value, exc_tb):  # noqa: N802
        logger.error("Unbehandelte Ausnahme", exc_info=(exc_type, exc_value, exc_tb))
        stacktrace = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
        QMessageBox.critical(None, "Unhandled exception", stacktrace)

    sys.excepthook = _handler


def _create_qt_application() -> QApplication:
    """Erzeugt die QApplication mit DPI-Einstellungen."""
    QApplication.setHighDpiScaleFactorRoundingPolicy(Qt.HighDpiScaleFactorRoundingPolicy.PassThrough)
    return QApplication(sys.argv)


def _load_presets():
    """Lädt Container-Vorlagen; gibt bei Fehlern eine Warnung aus."""
    try:
        return preset_io.load_presets()
    except (OSError, preset_io.PresetFormatError) as err:
        logger.error("Fehler beim Laden der Container-Vorlagen: %s", err, exc_info=True)
        QMessageBox.warning(None, "Error", "container_presets.json is missing or broken.")
        return {}


def _open_session(argv: list[str]) -> StowageSession:
    """Store-Pfad optional als erstes Argument, sonst ``data/stowage.json``."""
    path = Path(argv[1]) if len(argv) > 1 else default_store_path()
    try:
        store = JsonDocumentStore(path)
    except StoreError as err:
        logger.error("Store %s nicht lesbar: %s", path, err, exc_info=True)
        QMessageBox.critical(None, "Error", f"Cannot open {path}:\n{err}")
        sys.exit(1)

    session = StowageSession(store)
    if not session.load():
        QMessageBox.warning(None, "Error", session.message)
    return session


# --------------------------------------------------------------------------- #
# Einstiegspunkt
# --------------------------------------------------------------------------- #
def main() -> None:
    _setup_logging()
    _install_exception_hook()

    # GUI-Klasse *nach* Logger-Initialisierung importieren
    from stowage_planner.gui.window import MainWindow

    app = _create_qt_application()
    presets = _load_presets()
    session = _open_session(sys.argv)

    main_window = MainWindow(session, presets)
    main_window.resize(1280, 800)
    main_window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
