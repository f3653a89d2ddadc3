"""Command-line entry point for the quartobridge window."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from PySide6.QtCore import Qt
from PySide6.QtGui import QColor, QIcon, QPainter, QPen, QPixmap

# QtWebEngine must be loaded before the QApplication exists.
from PySide6.QtWebEngineWidgets import QWebEngineView  # noqa: F401
from PySide6.QtWidgets import QApplication

from .settings import BridgeSettings
from .window import QuartoBridgeWindow

logger = logging.getLogger(__name__)


def _default_vault_root(settings: BridgeSettings) -> Path:
    """Resolve the vault when no CLI path is provided."""
    remembered = settings.vault_root
    if remembered is not None and remembered.is_dir():
        return remembered.resolve()
    return Path.home()


def _build_app_icon() -> QIcon:
    """Draw a simple "Q" badge icon."""
    pixmap = QPixmap(64, 64)
    pixmap.fill(Qt.GlobalColor.transparent)

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QColor("#447099"))
    painter.drawRoundedRect(4, 4, 56, 56, 10, 10)

    pen = QPen(QColor("#ffffff"))
    pen.setWidth(5)
    pen.setCapStyle(Qt.PenCapStyle.RoundCap)
    painter.setPen(pen)
    painter.setBrush(Qt.BrushStyle.NoBrush)

    # Stylized "Q"
    painter.drawEllipse(16, 14, 30, 30)
    painter.drawLine(36, 36, 48, 50)
    painter.end()
    return QIcon(pixmap)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="quartobridge",
        description="Browse a notes vault and preview, render, and create Quarto projects.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help="Vault directory to browse (default: last vault used, or home directory).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    settings = BridgeSettings.load()
    root = Path(args.path).expanduser() if args.path is not None else _default_vault_root(settings)
    if not root.exists():
        print(f"Path does not exist: {root}", file=sys.stderr)
        return 2
    if not root.is_dir():
        print(f"Path is not a directory: {root}", file=sys.stderr)
        return 2

    app = QApplication(sys.argv[:1] if argv is not None else sys.argv)
    app.setApplicationName("quartobridge")
    app_icon = _build_app_icon()
    app.setWindowIcon(app_icon)

    logger.info("Opening vault %s (quarto binary: %s)", root, settings.quarto_binary)
    window = QuartoBridgeWindow(root, app_icon, settings)
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
