"""Wires vault commands to project discovery, the Quarto runner, and the preview."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path, PurePosixPath

from PySide6.QtCore import QObject, Signal

from .project import MARKER_FILE_NAME, WHOLE_PROJECT, Vault, find_project_root
from .runner import QuartoJob, QuartoRunner
from .settings import BridgeSettings

logger = logging.getLogger(__name__)

PROJECT_NOT_FOUND_MESSAGE = f"No {MARKER_FILE_NAME} found in parent directories. Is this a Quarto project?"
PROJECT_TYPES = ["default", "website", "blog", "book", "manuscript"]
ENGINES = ["markdown", "jupyter", "knitr"]


class QuartoBridge(QObject):
    """Runs Quarto commands for vault-relative files.

    ``notice`` carries transient user-facing messages (including everything
    the runner reports); ``preview_url_ready`` carries the URL the preview
    panel should show.
    """

    notice = Signal(str)
    preview_url_ready = Signal(str)

    def __init__(self, vault: Vault, settings: BridgeSettings, runner: QuartoRunner | None = None, parent=None):
        super().__init__(parent)
        self.vault = vault
        self.settings = settings
        self.runner = runner if runner is not None else QuartoRunner(self)
        self.runner.notice.connect(self.notice)

    def resolve(self, relative: str) -> Path:
        return self.vault.absolute_path(relative)

    def _project_root_for(self, file_path: str) -> Path | None:
        root = find_project_root(self.vault, file_path)
        if root is None:
            logger.info("No Quarto project above %s", file_path or "/")
            self.notice.emit(PROJECT_NOT_FOUND_MESSAGE)
            return None
        return self.resolve(root)

    def preview_project(self, file_path: str) -> bool:
        project_dir = self._project_root_for(file_path)
        if project_dir is None:
            return False
        self.runner.start_preview(
            project_dir,
            self.preview_url_ready.emit,
            self.settings.quarto_binary,
        )
        return True

    def stop_all_previews(self) -> None:
        self.runner.stop_all()
        self.notice.emit("Stopped all Quarto preview servers.")

    def render_file(self, file_path: str, on_finished: Callable[[QuartoJob], None] | None = None) -> QuartoJob:
        working_dir = self.resolve(self.vault.parent_of(file_path) or "")
        target = PurePosixPath(file_path).name
        return self.runner.render(working_dir, target, self.settings.quarto_binary, on_finished)

    def render_project(
        self,
        file_path: str,
        on_finished: Callable[[QuartoJob], None] | None = None,
    ) -> QuartoJob | None:
        project_dir = self._project_root_for(file_path)
        if project_dir is None:
            return None
        return self.runner.render(project_dir, WHOLE_PROJECT, self.settings.quarto_binary, on_finished)

    def create_project(
        self,
        name: str,
        project_type: str,
        engine: str,
        active_file: str | None = None,
        on_finished: Callable[[QuartoJob], None] | None = None,
    ) -> QuartoJob:
        # New projects land beside the active note, or at the vault root.
        parent = self.vault.parent_of(active_file) if active_file else None
        parent_dir = self.resolve(parent or "")
        return self.runner.create_project(
            parent_dir,
            name,
            project_type,
            engine,
            self.settings.quarto_binary,
            on_finished,
        )

    def shutdown(self) -> None:
        self.runner.stop_all()
