"""Create-project and settings dialogs."""

from __future__ import annotations

from typing import NamedTuple

from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFileDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from .bridge import ENGINES, PROJECT_TYPES
from .settings import DEFAULT_QUARTO_BINARY, BridgeSettings

PROJECT_TYPE_LABELS = {
    "default": "Default Project",
    "website": "Website",
    "blog": "Blog",
    "book": "Book",
    "manuscript": "Manuscript",
}
ENGINE_LABELS = {
    "markdown": "Markdown (standard)",
    "jupyter": "Jupyter (python)",
    "knitr": "Knitr (R)",
}


class NewProjectRequest(NamedTuple):
    project_type: str
    name: str
    engine: str


class CreateProjectDialog(QDialog):
    """Collects project type, folder name, and engine for `quarto create project`."""

    def __init__(self, parent_dir_label: str, parent: QWidget | None = None):
        super().__init__(parent)
        self.setWindowTitle("Create New Quarto Project")

        self.type_combo = QComboBox()
        for value in PROJECT_TYPES:
            self.type_combo.addItem(PROJECT_TYPE_LABELS.get(value, value), value)

        self.name_input = QLineEdit()
        self.name_input.setPlaceholderText("Name of the project folder")

        self.engine_combo = QComboBox()
        for value in ENGINES:
            self.engine_combo.addItem(ENGINE_LABELS.get(value, value), value)

        form = QFormLayout()
        form.addRow("Project Type", self.type_combo)
        form.addRow("Project Name", self.name_input)
        form.addRow("Engine", self.engine_combo)

        location_label = QLabel(f"Created in: {parent_dir_label}")
        location_label.setWordWrap(True)

        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Cancel)
        create_btn = buttons.addButton("Create", QDialogButtonBox.ButtonRole.AcceptRole)
        create_btn.setDefault(True)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)

        layout = QVBoxLayout(self)
        layout.addLayout(form)
        layout.addWidget(location_label)
        layout.addWidget(buttons)

    def request(self) -> NewProjectRequest:
        return NewProjectRequest(
            project_type=self.type_combo.currentData(),
            name=self.name_input.text().strip(),
            engine=self.engine_combo.currentData(),
        )

    def accept(self) -> None:
        if not self.request().name:
            QMessageBox.information(self, "Project name required", "Please enter a project name")
            self.name_input.setFocus()
            return
        super().accept()


class SettingsDialog(QDialog):
    """Edits the Quarto binary path; every change is saved immediately."""

    def __init__(self, settings: BridgeSettings, parent: QWidget | None = None):
        super().__init__(parent)
        self.settings = settings
        self.setWindowTitle("quartobridge Settings")

        self.binary_input = QLineEdit(settings.raw_quarto_binary)
        self.binary_input.setPlaceholderText(DEFAULT_QUARTO_BINARY)
        self.binary_input.textChanged.connect(self._on_binary_changed)

        browse_btn = QPushButton("Browse...")
        browse_btn.clicked.connect(self._browse_for_binary)

        binary_row = QHBoxLayout()
        binary_row.addWidget(self.binary_input, 1)
        binary_row.addWidget(browse_btn)

        description = QLabel('Path to the quarto executable. Leave as "quarto" if it is in your system PATH.')
        description.setWordWrap(True)

        form = QFormLayout()
        form.addRow("Quarto binary path", binary_row)

        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Close)
        buttons.rejected.connect(self.reject)

        layout = QVBoxLayout(self)
        layout.addLayout(form)
        layout.addWidget(description)
        layout.addWidget(buttons)

    def _on_binary_changed(self, value: str) -> None:
        self.settings.quarto_binary = value
        self.settings.save()

    def _browse_for_binary(self) -> None:
        path, _filter = QFileDialog.getOpenFileName(self, "Select quarto executable")
        if path:
            self.binary_input.setText(path)
