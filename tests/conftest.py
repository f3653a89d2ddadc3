from __future__ import annotations

import os
import sys
import time

import pytest

# Widgets are created in tests; no display is available in CI.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtCore import QCoreApplication, QEventLoop  # noqa: E402


@pytest.fixture(scope="session")
def qapp():
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication(sys.argv[:1])
    yield app


@pytest.fixture
def wait_until(qapp):
    """Pump the Qt event loop until ``predicate`` is true or the timeout expires."""

    def _wait(predicate, timeout: float = 10.0) -> bool:
        deadline = time.monotonic() + timeout
        while not predicate():
            if time.monotonic() > deadline:
                return False
            QCoreApplication.processEvents(QEventLoop.ProcessEventsFlag.AllEvents, 50)
            time.sleep(0.01)
        return True

    return _wait


@pytest.fixture
def vault_dir(tmp_path):
    """A vault with one Quarto project nested below a plain folder."""
    vault = tmp_path / "vault"
    (vault / "reports" / "sub").mkdir(parents=True)
    (vault / "reports" / "_quarto.yml").write_text("project:\n  type: default\n", encoding="utf-8")
    (vault / "reports" / "sub" / "analysis.qmd").write_text("---\ntitle: Analysis\n---\n\n# Results\n", encoding="utf-8")
    (vault / "journal").mkdir()
    (vault / "journal" / "today.md").write_text("# Today\n", encoding="utf-8")
    return vault
