from __future__ import annotations

import pytest

pytest.importorskip("PySide6.QtWebEngineWidgets")

from PySide6.QtCore import Qt, QUrl  # noqa: E402
from PySide6.QtWidgets import QDockWidget, QMainWindow, QWidget  # noqa: E402

from quartobridge.preview import (  # noqa: E402
    VIEW_TYPE_QUARTO_PREVIEW,
    QuartoPreviewView,
    activate_preview_view,
    find_preview_dock,
)


class FakeBrowser(QWidget):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.loaded = []

    def setUrl(self, url):  # noqa: N802
        self.loaded.append(url.toString())


def test_url_set_before_opening_is_applied_on_open(qapp):
    view = QuartoPreviewView(browser_factory=FakeBrowser)
    view.set_url("http://localhost:4200")
    assert view.browser() is None

    view.show()
    try:
        assert view.browser().loaded == ["http://localhost:4200"]
    finally:
        view.close()


def test_url_set_after_opening_is_applied_immediately(qapp):
    view = QuartoPreviewView(browser_factory=FakeBrowser)
    browser = view.ensure_browser()

    view.set_url("http://localhost:4200")
    view.set_url("http://localhost:4300")

    assert view.url() == "http://localhost:4300"
    assert browser.loaded == ["http://localhost:4200", "http://localhost:4300"]
    assert QUrl(view.url()).toString() == "http://localhost:4300"


def test_browser_is_built_once(qapp):
    view = QuartoPreviewView(browser_factory=FakeBrowser)
    assert view.ensure_browser() is view.ensure_browser()


def test_activation_reuses_a_single_dock(qapp):
    window = QMainWindow()
    first = activate_preview_view(window, browser_factory=FakeBrowser)
    second = activate_preview_view(window, browser_factory=FakeBrowser)

    docks = [dock for dock in window.findChildren(QDockWidget) if dock.objectName() == VIEW_TYPE_QUARTO_PREVIEW]
    assert first is second
    assert len(docks) == 1
    assert find_preview_dock(window).widget() is first
    assert first.view_type() == VIEW_TYPE_QUARTO_PREVIEW


def test_dock_prefers_the_side_area(qapp):
    window = QMainWindow()
    activate_preview_view(window, browser_factory=FakeBrowser)
    assert window.dockWidgetArea(find_preview_dock(window)) == Qt.DockWidgetArea.RightDockWidgetArea
