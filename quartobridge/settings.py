"""Persisted quartobridge settings."""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = ".quartobridge.json"
DEFAULT_QUARTO_BINARY = "quarto"
DEFAULT_SETTINGS: dict[str, str] = {
    "quarto_binary": DEFAULT_QUARTO_BINARY,
    "vault_root": "",
}


def default_settings_path() -> Path:
    return Path.home() / SETTINGS_FILE_NAME


class BridgeSettings:
    """Single JSON settings record, merged over defaults when loaded."""

    def __init__(self, path: Path, values: dict[str, str] | None = None):
        self.path = path
        self._values: dict[str, str] = dict(DEFAULT_SETTINGS)
        if values:
            self._values.update(values)

    @classmethod
    def load(cls, path: Path | None = None) -> "BridgeSettings":
        settings_path = path if path is not None else default_settings_path()
        values: dict[str, str] = {}
        try:
            payload = json.loads(settings_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            payload = {}
        except (OSError, ValueError) as exc:
            logger.warning("Could not read settings from %s: %s", settings_path, exc)
            payload = {}
        if isinstance(payload, dict):
            for key, value in payload.items():
                # Keep only string values; anything else falls back to defaults.
                if isinstance(key, str) and isinstance(value, str):
                    values[key] = value
        return cls(settings_path, values)

    def save(self) -> bool:
        try:
            self.path.write_text(json.dumps(self._values, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not save settings to %s: %s", self.path, exc)
            return False
        return True

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)

    @property
    def quarto_binary(self) -> str:
        """Configured executable, falling back to ``quarto`` when left blank."""
        return self._values.get("quarto_binary", "").strip() or DEFAULT_QUARTO_BINARY

    @quarto_binary.setter
    def quarto_binary(self, value: str) -> None:
        self._values["quarto_binary"] = value

    @property
    def raw_quarto_binary(self) -> str:
        return self._values.get("quarto_binary", "")

    @property
    def vault_root(self) -> Path | None:
        raw = self._values.get("vault_root", "").strip()
        if not raw:
            return None
        return Path(raw).expanduser()

    @vault_root.setter
    def vault_root(self, value: Path | None) -> None:
        self._values["vault_root"] = "" if value is None else str(value)
