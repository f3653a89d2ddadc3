"""Main window: vault tree, note view, and the Quarto commands."""

from __future__ import annotations

import logging
from pathlib import Path

from PySide6.QtCore import QDir, Qt, QUrl
from PySide6.QtGui import QIcon
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMenu,
    QPushButton,
    QSizePolicy,
    QSplitter,
    QTextBrowser,
    QTreeView,
    QVBoxLayout,
    QWidget,
)

from .bridge import QuartoBridge
from .dialogs import CreateProjectDialog, SettingsDialog
from .notes import NoteRenderer, VaultModel, is_note
from .preview import activate_preview_view
from .project import Vault
from .runner import QuartoJob
from .settings import BridgeSettings

logger = logging.getLogger(__name__)

NOTICE_TIMEOUT_MS = 5000


class QuartoBridgeWindow(QMainWindow):
    def __init__(self, root: Path, app_icon: QIcon, settings: BridgeSettings, bridge: QuartoBridge | None = None):
        super().__init__()
        self.vault = Vault(root)
        self.settings = settings
        self.bridge = bridge if bridge is not None else QuartoBridge(self.vault, settings, parent=self)
        self.bridge.notice.connect(self.show_notice)
        self.bridge.preview_url_ready.connect(self.show_preview_url)
        self.bridge.runner.job_finished.connect(self._on_job_finished)
        self.renderer = NoteRenderer()
        self.active_file: str | None = None
        self._default_status_text = "Ready"

        self.setWindowTitle("quartobridge")
        self.setWindowIcon(app_icon)
        self.resize(1400, 900)
        self.setDockNestingEnabled(True)

        self.model = VaultModel(self)
        self.model.setFilter(QDir.AllDirs | QDir.NoDotAndDotDot | QDir.Files)

        self.tree = QTreeView()
        self.tree.setModel(self.model)
        self.tree.setHeaderHidden(True)
        self.tree.hideColumn(1)
        self.tree.hideColumn(2)
        self.tree.hideColumn(3)
        self.tree.setMinimumWidth(220)
        self.tree.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self.tree.customContextMenuRequested.connect(self._show_tree_context_menu)
        self.tree.selectionModel().currentChanged.connect(self._on_tree_selection_changed)

        self.note_view = QTextBrowser()
        self.note_view.setOpenLinks(False)

        self.preview_btn = QPushButton("Preview Project")
        self.preview_btn.setToolTip("Start quarto preview for the project containing the active file")
        self.preview_btn.clicked.connect(self.preview_active_project)

        stop_btn = QPushButton("Stop Previews")
        stop_btn.clicked.connect(self.stop_all_previews)

        self.render_file_btn = QPushButton("Render File")
        self.render_file_btn.clicked.connect(self.render_active_file)

        self.render_project_btn = QPushButton("Render Project")
        self.render_project_btn.clicked.connect(self.render_active_project)

        new_project_btn = QPushButton("New Project...")
        new_project_btn.clicked.connect(self.create_new_project)

        settings_btn = QPushButton("Settings...")
        settings_btn.clicked.connect(self.open_settings)

        self.path_label = QLabel("")

        top_bar = QHBoxLayout()
        top_bar.setContentsMargins(0, 0, 0, 0)
        top_bar.addWidget(self.preview_btn)
        top_bar.addWidget(stop_btn)
        top_bar.addWidget(self.render_file_btn)
        top_bar.addWidget(self.render_project_btn)
        top_bar.addWidget(new_project_btn)
        top_bar.addWidget(self.path_label, 1)
        top_bar.addWidget(settings_btn, 0, Qt.AlignmentFlag.AlignRight)

        top_bar_widget = QWidget()
        top_bar_widget.setLayout(top_bar)
        top_bar_widget.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Fixed)

        self.splitter = QSplitter(Qt.Horizontal)
        self.splitter.addWidget(self.tree)
        self.splitter.addWidget(self.note_view)
        self.splitter.setChildrenCollapsible(False)
        self.splitter.setStretchFactor(0, 1)
        self.splitter.setStretchFactor(1, 3)

        central = QWidget()
        layout = QVBoxLayout(central)
        layout.addWidget(top_bar_widget)
        layout.addWidget(self.splitter, 1)
        self.setCentralWidget(central)

        root_index = self.model.setRootPath(str(self.vault.root))
        self.tree.setRootIndex(root_index)
        self._set_active_file(None)
        self.statusBar().showMessage(self._default_status_text)

    # Notices and preview ------------------------------------------------

    def show_notice(self, message: str) -> None:
        self.statusBar().showMessage(message, NOTICE_TIMEOUT_MS)

    def show_preview_url(self, url: str) -> None:
        activate_preview_view(self).set_url(url)

    # Active file ---------------------------------------------------------

    def _set_active_file(self, relative: str | None) -> None:
        self.active_file = relative
        has_file = relative is not None
        self.preview_btn.setEnabled(has_file)
        self.render_file_btn.setEnabled(has_file)
        self.render_project_btn.setEnabled(has_file)
        if relative is None:
            self.path_label.setText("Select a note")
            self.note_view.setHtml("<p>Select a note to view it here.</p>")
            return
        self.path_label.setText(relative)
        self._load_note(self.vault.absolute_path(relative))

    def _load_note(self, path: Path) -> None:
        try:
            html_doc = self.renderer.render_file(path)
        except OSError as exc:
            logger.warning("Could not read note %s: %s", path, exc)
            self.show_notice(f"Could not read {path.name}: {exc}")
            return
        self.note_view.document().setBaseUrl(QUrl.fromLocalFile(f"{path.parent}/"))
        self.note_view.setHtml(html_doc)

    def _on_tree_selection_changed(self, current, _previous) -> None:
        path = Path(self.model.filePath(current))
        if not path.is_file() or not is_note(path) or not self.vault.contains(path):
            return
        self._set_active_file(self.vault.relative_path(path))

    def _show_tree_context_menu(self, pos) -> None:
        index = self.tree.indexAt(pos)
        if not index.isValid():
            return
        self.tree.setCurrentIndex(index)
        path = Path(self.model.filePath(index))

        menu = QMenu(self)
        handlers = {}
        if path.is_file() and self.active_file is not None:
            handlers[menu.addAction("Preview Project")] = self.preview_active_project
            handlers[menu.addAction("Render File")] = self.render_active_file
            handlers[menu.addAction("Render Project")] = self.render_active_project
            menu.addSeparator()
        handlers[menu.addAction("New Project...")] = self.create_new_project
        chosen = menu.exec(self.tree.viewport().mapToGlobal(pos))
        if chosen is None:
            return
        handler = handlers.get(chosen)
        if handler is not None:
            handler()

    # Commands ------------------------------------------------------------

    def preview_active_project(self) -> None:
        if self.active_file is None:
            self.show_notice("Select a note inside a Quarto project first")
            return
        self.bridge.preview_project(self.active_file)

    def stop_all_previews(self) -> None:
        self.bridge.stop_all_previews()

    def render_active_file(self) -> None:
        if self.active_file is None:
            self.show_notice("Select a note to render first")
            return
        self.bridge.render_file(self.active_file)

    def render_active_project(self) -> None:
        if self.active_file is None:
            self.show_notice("Select a note inside a Quarto project first")
            return
        self.bridge.render_project(self.active_file)

    def create_new_project(self) -> None:
        parent = self.vault.parent_of(self.active_file) if self.active_file else None
        parent_label = str(self.vault.absolute_path(parent or ""))
        dialog = CreateProjectDialog(parent_label, self)
        if not dialog.exec():
            return
        request = dialog.request()
        self.bridge.create_project(request.name, request.project_type, request.engine, self.active_file)

    def open_settings(self) -> None:
        SettingsDialog(self.settings, self).exec()

    def _on_job_finished(self, job: QuartoJob) -> None:
        if job.kind == "create" and job.succeeded:
            # New project folders should show up bold right away.
            self.model.clear_project_root_cache()
            self.tree.viewport().update()

    def closeEvent(self, event) -> None:  # noqa: N802
        self.bridge.shutdown()
        self.settings.vault_root = self.vault.root
        self.settings.save()
        super().closeEvent(event)
