"""Docked, capability-restricted browser panel showing the Quarto preview."""

from __future__ import annotations

import logging

from PySide6.QtCore import Qt, QUrl
from PySide6.QtGui import QDesktopServices
from PySide6.QtWebEngineCore import QWebEnginePage, QWebEngineSettings
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import QDockWidget, QMainWindow, QVBoxLayout, QWidget

logger = logging.getLogger(__name__)

VIEW_TYPE_QUARTO_PREVIEW = "quarto-preview-view"
PREVIEW_DISPLAY_TEXT = "Quarto Preview"


class _ExternalWindowPage(QWebEnginePage):
    """Throwaway page for pop-ups: hands the first navigation to the system browser."""

    def acceptNavigationRequest(self, url, _type, _is_main_frame):  # noqa: N802
        QDesktopServices.openUrl(url)
        self.deleteLater()
        return False


class PreviewPage(QWebEnginePage):
    def createWindow(self, _type):  # noqa: N802
        # Pop-up navigation is allowed, but never as a new window of this app.
        return _ExternalWindowPage(self.profile(), self)


def create_preview_browser(parent: QWidget | None = None) -> QWebEngineView:
    """Build the embedded browser with the minimum capabilities Quarto pages need."""
    browser = QWebEngineView(parent)
    browser.setPage(PreviewPage(browser))
    settings = browser.settings()
    # Scripts and pop-ups are needed for Quarto interactivity and site search.
    settings.setAttribute(QWebEngineSettings.WebAttribute.JavascriptEnabled, True)
    settings.setAttribute(QWebEngineSettings.WebAttribute.JavascriptCanOpenWindows, True)
    # Nothing else from the host: no clipboard, plugins, or local file reach.
    settings.setAttribute(QWebEngineSettings.WebAttribute.JavascriptCanAccessClipboard, False)
    settings.setAttribute(QWebEngineSettings.WebAttribute.PluginsEnabled, False)
    settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessFileUrls, False)
    settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessRemoteUrls, False)
    return browser


class QuartoPreviewView(QWidget):
    """Holds the current preview URL; the browser itself is built on first show."""

    def __init__(self, parent: QWidget | None = None, browser_factory=None):
        super().__init__(parent)
        self._url = ""
        self._browser = None
        self._browser_factory = browser_factory if browser_factory is not None else create_preview_browser
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

    def view_type(self) -> str:
        return VIEW_TYPE_QUARTO_PREVIEW

    def display_text(self) -> str:
        return PREVIEW_DISPLAY_TEXT

    def url(self) -> str:
        return self._url

    def browser(self):
        return self._browser

    def set_url(self, url: str) -> None:
        self._url = url
        if self._browser is not None:
            self._browser.setUrl(QUrl(url))

    def ensure_browser(self):
        if self._browser is None:
            self._browser = self._browser_factory(self)
            self.layout().addWidget(self._browser, 1)
            if self._url:
                self._browser.setUrl(QUrl(self._url))
        return self._browser

    def showEvent(self, event) -> None:  # noqa: N802
        self.ensure_browser()
        super().showEvent(event)


def find_preview_dock(window: QMainWindow) -> QDockWidget | None:
    return window.findChild(QDockWidget, VIEW_TYPE_QUARTO_PREVIEW)


def activate_preview_view(window: QMainWindow, browser_factory=None) -> QuartoPreviewView:
    """Reveal the single preview dock of ``window``, creating it on first use."""
    dock = find_preview_dock(window)
    if dock is None:
        dock = QDockWidget(PREVIEW_DISPLAY_TEXT, window)
        dock.setObjectName(VIEW_TYPE_QUARTO_PREVIEW)
        dock.setWidget(QuartoPreviewView(dock, browser_factory=browser_factory))
        window.addDockWidget(_preferred_dock_area(dock), dock)
        logger.debug("Created preview dock")
    dock.show()
    dock.raise_()
    view = dock.widget()
    view.setFocus(Qt.FocusReason.OtherFocusReason)
    return view


def _preferred_dock_area(dock: QDockWidget) -> Qt.DockWidgetArea:
    # Prefer the side panel; fall back to whatever area the dock allows.
    candidates = (
        Qt.DockWidgetArea.RightDockWidgetArea,
        Qt.DockWidgetArea.LeftDockWidgetArea,
        Qt.DockWidgetArea.BottomDockWidgetArea,
        Qt.DockWidgetArea.TopDockWidgetArea,
    )
    for area in candidates:
        if dock.isAreaAllowed(area):
            return area
    return Qt.DockWidgetArea.RightDockWidgetArea
