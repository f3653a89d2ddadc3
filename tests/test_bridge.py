from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from quartobridge.bridge import PROJECT_NOT_FOUND_MESSAGE, QuartoBridge
from quartobridge.project import Vault
from quartobridge.runner import QuartoRunner
from quartobridge.settings import BridgeSettings


class RecordingRunner(QuartoRunner):
    """Records what the bridge asks for instead of spawning Quarto."""

    def __init__(self):
        super().__init__()
        self.calls = []
        self.on_url_ready = None

    def start_preview(self, project_dir, on_url_ready=None, quarto_binary="quarto"):
        self.calls.append(("preview", Path(project_dir), quarto_binary))
        self.on_url_ready = on_url_ready

    def render(self, working_dir, target, quarto_binary="quarto", on_finished=None):
        self.calls.append(("render", Path(working_dir), target, quarto_binary))

    def create_project(self, parent_dir, name, project_type, engine, quarto_binary="quarto", on_finished=None):
        self.calls.append(("create", Path(parent_dir), name, project_type, engine, quarto_binary))


@pytest.fixture
def bridge(qapp, vault_dir, tmp_path):
    settings = BridgeSettings(tmp_path / "settings.json")
    bridge = QuartoBridge(Vault(vault_dir), settings, RecordingRunner())
    bridge.notices = []
    bridge.notice.connect(bridge.notices.append)
    return bridge


def test_resolve_joins_vault_relative_paths(bridge):
    root = bridge.vault.root
    assert bridge.resolve("") == root
    assert bridge.resolve("reports/sub") == root / "reports" / "sub"


def test_preview_starts_in_the_located_project_root(bridge):
    assert bridge.preview_project("reports/sub/analysis.qmd") is True
    assert bridge.runner.calls == [("preview", bridge.vault.root / "reports", "quarto")]


def test_ready_url_is_forwarded_to_the_preview_surface(bridge):
    urls = []
    bridge.preview_url_ready.connect(urls.append)
    bridge.preview_project("reports/sub/analysis.qmd")

    bridge.runner.on_url_ready("http://localhost:4200")

    assert urls == ["http://localhost:4200"]


def test_preview_outside_a_project_is_refused(bridge):
    assert bridge.preview_project("journal/today.md") is False
    assert bridge.runner.calls == []
    assert bridge.notices == [PROJECT_NOT_FOUND_MESSAGE]


def test_configured_binary_is_used(bridge):
    bridge.settings.quarto_binary = "/opt/quarto/bin/quarto"
    bridge.preview_project("reports/sub/analysis.qmd")
    assert bridge.runner.calls[0][2] == "/opt/quarto/bin/quarto"


def test_render_file_runs_in_the_containing_folder(bridge):
    bridge.render_file("reports/sub/analysis.qmd")
    assert bridge.runner.calls == [("render", bridge.vault.root / "reports" / "sub", "analysis.qmd", "quarto")]


def test_render_file_at_vault_root(bridge):
    bridge.render_file("index.qmd")
    assert bridge.runner.calls == [("render", bridge.vault.root, "index.qmd", "quarto")]


def test_render_project_targets_the_whole_project(bridge):
    bridge.render_project("reports/sub/analysis.qmd")
    assert bridge.runner.calls == [("render", bridge.vault.root / "reports", ".", "quarto")]


def test_render_project_outside_a_project_is_refused(bridge):
    assert bridge.render_project("journal/today.md") is None
    assert bridge.runner.calls == []
    assert bridge.notices == [PROJECT_NOT_FOUND_MESSAGE]


def test_create_project_beside_the_active_file(bridge):
    bridge.create_project("thesis", "book", "knitr", active_file="journal/today.md")
    assert bridge.runner.calls == [("create", bridge.vault.root / "journal", "thesis", "book", "knitr", "quarto")]


def test_create_project_without_active_file_uses_the_vault_root(bridge):
    bridge.create_project("site", "website", "markdown")
    assert bridge.runner.calls == [("create", bridge.vault.root, "site", "website", "markdown", "quarto")]


def test_stop_all_previews_announces_it(bridge):
    bridge.stop_all_previews()
    assert bridge.notices == ["Stopped all Quarto preview servers."]


def test_preview_exit_is_not_announced(bridge):
    bridge.runner.preview_exited.emit("/vault/reports", 1)
    assert bridge.notices == []


def test_runner_notices_are_forwarded(bridge):
    bridge.runner.notice.emit("Quarto render complete!")
    assert bridge.notices == ["Quarto render complete!"]


def test_render_project_scenario_spawns_quarto_render_dot(qapp, wait_until, vault_dir, tmp_path):
    runner = QuartoRunner()
    bridge = QuartoBridge(Vault(vault_dir), BridgeSettings(tmp_path / "settings.json"), runner)
    finished = []
    completed = subprocess.CompletedProcess([], 0, stdout="", stderr="")

    with patch("quartobridge.runner.subprocess.run", return_value=completed) as run:
        bridge.render_project("reports/sub/analysis.qmd", finished.append)
        assert runner.wait_for_jobs(10000)
    assert wait_until(lambda: finished)

    command = run.call_args.args[0]
    assert Path(command[0]).name.startswith("quarto")
    assert command[1:] == ["render", "."]
    assert run.call_args.kwargs["cwd"] == str(Vault(vault_dir).root / "reports")
    assert finished[0].succeeded
