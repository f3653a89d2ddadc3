"""Vault tree model and read-only note rendering for the host window."""

from __future__ import annotations

import html
from pathlib import Path

from markdown_it import MarkdownIt
from mdit_py_plugins.dollarmath import dollarmath_plugin
from mdit_py_plugins.front_matter import front_matter_plugin
from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import QFileSystemModel

from .project import MARKER_FILE_NAME, is_project_root

NOTE_SUFFIXES = (".qmd", ".md", ".ipynb", ".rmd")
NOTE_NAME_FILTERS = [f"*{suffix}" for suffix in NOTE_SUFFIXES] + [MARKER_FILE_NAME]


def is_note(path: Path) -> bool:
    return path.suffix.lower() in NOTE_SUFFIXES


class NoteRenderer:
    """Converts a note's markdown to HTML for the read-only note view."""

    def __init__(self) -> None:
        self._md = MarkdownIt(
            "commonmark",
            {"html": False, "linkify": False, "typographer": True},
        ).enable("table").enable("strikethrough")
        # Quarto documents open with a YAML header; keep it out of the body.
        self._md.use(front_matter_plugin)
        # Parse $...$ / $$...$$ before emphasis rules so TeX stays intact.
        self._md.use(dollarmath_plugin)

        def render_math_inline(tokens, idx, options, env):
            return f"<code>${html.escape(tokens[idx].content)}$</code>"

        def render_math_block(tokens, idx, options, env):
            body = (tokens[idx].content or "").strip("\n")
            return f"<pre>$$\n{html.escape(body)}\n$$</pre>\n"

        self._md.renderer.rules["math_inline"] = render_math_inline
        self._md.renderer.rules["math_block"] = render_math_block

    def render_body(self, markdown_text: str) -> str:
        return self._md.render(markdown_text)

    def render_document(self, markdown_text: str, title: str) -> str:
        return (
            "<html><head>"
            f"<title>{html.escape(title)}</title>"
            "</head><body>"
            f"{self.render_body(markdown_text)}"
            "</body></html>"
        )

    def render_file(self, path: Path) -> str:
        if path.suffix.lower() == ".ipynb":
            # Notebooks are JSON; show the source rather than guessing at cells.
            text = path.read_text(encoding="utf-8", errors="replace")
            return f"<html><body><pre>{html.escape(text)}</pre></body></html>"
        markdown_text = path.read_text(encoding="utf-8", errors="replace")
        return self.render_document(markdown_text, path.name)


class VaultModel(QFileSystemModel):
    """Filesystem model that shows notes and marks Quarto project roots in bold."""

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self._project_root_cache: dict[str, bool] = {}
        self.setNameFilters(NOTE_NAME_FILTERS)
        self.setNameFilterDisables(False)

    def data(self, index, role=Qt.ItemDataRole.DisplayRole):
        if role == Qt.ItemDataRole.FontRole:
            info = self.fileInfo(index)
            if info.isDir() and self.is_project_root(Path(info.filePath())):
                base_font = super().data(index, role)
                font = QFont(base_font) if isinstance(base_font, QFont) else QFont()
                font.setBold(True)
                return font
        if role == Qt.ItemDataRole.ToolTipRole:
            info = self.fileInfo(index)
            if info.isDir() and self.is_project_root(Path(info.filePath())):
                return f"Quarto project ({MARKER_FILE_NAME})"
        return super().data(index, role)

    def is_project_root(self, directory: Path) -> bool:
        # Checked once per directory until the cache is cleared on refresh.
        key = str(directory)
        cached = self._project_root_cache.get(key)
        if cached is None:
            cached = is_project_root(directory)
            self._project_root_cache[key] = cached
        return cached

    def clear_project_root_cache(self) -> None:
        self._project_root_cache.clear()
