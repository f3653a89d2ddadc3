from __future__ import annotations

import json

from quartobridge.dialogs import CreateProjectDialog, NewProjectRequest, SettingsDialog
from quartobridge.settings import BridgeSettings


def test_create_dialog_defaults(qapp):
    dialog = CreateProjectDialog("/vault")
    assert dialog.request() == NewProjectRequest(project_type="default", name="", engine="markdown")


def test_create_dialog_collects_choices(qapp):
    dialog = CreateProjectDialog("/vault")
    dialog.type_combo.setCurrentIndex(dialog.type_combo.findData("book"))
    dialog.engine_combo.setCurrentIndex(dialog.engine_combo.findData("knitr"))
    dialog.name_input.setText("  thesis  ")

    assert dialog.request() == NewProjectRequest(project_type="book", name="thesis", engine="knitr")


def test_settings_dialog_saves_every_change(qapp, tmp_path):
    path = tmp_path / "settings.json"
    settings = BridgeSettings(path)
    dialog = SettingsDialog(settings)

    dialog.binary_input.setText("/opt/quarto/bin/quarto")

    assert settings.quarto_binary == "/opt/quarto/bin/quarto"
    assert json.loads(path.read_text(encoding="utf-8"))["quarto_binary"] == "/opt/quarto/bin/quarto"
