"""Vault paths and Quarto project-root discovery."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

MARKER_FILE_NAME = "_quarto.yml"
# Render target meaning "the whole project" rather than one file.
WHOLE_PROJECT = "."


class Vault:
    """Root directory of the browsed notes, addressed with vault-relative paths.

    Vault-relative paths use forward slashes and the root itself is the empty
    string, so callers never need to care about the host separator.
    """

    def __init__(self, root: Path):
        self.root = Path(root).expanduser().resolve()

    def relative_path(self, path: Path) -> str:
        resolved = Path(path).expanduser().resolve()
        relative = resolved.relative_to(self.root)
        text = relative.as_posix()
        return "" if text == "." else text

    def absolute_path(self, relative: str) -> Path:
        if not relative:
            return self.root
        return self.root.joinpath(*PurePosixPath(relative).parts)

    def is_file(self, relative: str) -> bool:
        return self.absolute_path(relative).is_file()

    def parent_of(self, relative: str) -> str | None:
        if not relative:
            return None
        parent = PurePosixPath(relative).parent.as_posix()
        return "" if parent == "." else parent

    def contains(self, path: Path) -> bool:
        try:
            self.relative_path(path)
        except ValueError:
            return False
        return True


def marker_path(folder: str) -> str:
    # The root folder has no prefix of its own.
    return MARKER_FILE_NAME if not folder else f"{folder}/{MARKER_FILE_NAME}"


def find_project_root(vault: Vault, file_path: str) -> str | None:
    """Return the nearest folder at or above ``file_path`` holding ``_quarto.yml``.

    ``file_path`` is vault-relative. The result is the vault-relative folder
    (``""`` for the vault root) or ``None`` when no level up to and including
    the root has the marker file.
    """
    folder = vault.parent_of(file_path)
    while folder is not None:
        if vault.is_file(marker_path(folder)):
            return folder
        folder = vault.parent_of(folder)
    return None


def is_project_root(directory: Path) -> bool:
    return (directory / MARKER_FILE_NAME).is_file()
