"""
Container-Vorlagen und Formularmodell für „Container anlegen/bearbeiten“.

Funktionen
----------
load_presets(path: str | None) -> dict[str, ContainerPreset]
ContainerForm                  -> Eingabe, Validierung, Dokument
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .models import (
    MAX_GRID_CELLS,
    MAX_LAYERS,
    MIN_GRID_CELLS,
    MIN_LAYERS,
    Container,
)

logger = logging.getLogger(__name__)

CUSTOM_PRESET = "custom"


class PresetFormatError(Exception):
    """container_presets.json fehlt oder ist defekt."""


@dataclass(frozen=True, slots=True)
class ContainerPreset:
    key: str
    name: str
    length: int
    width: int
    container_height: int
    real_length: Optional[float] = None
    real_width: Optional[float] = None
    desc: str = ""

    @property
    def label(self) -> str:
        if self.key == CUSTOM_PRESET:
            return self.name
        return f"{self.name} ({self.desc})"


# Cache für Vorlagen (wird lazy geladen)
_PRESETS: dict[str, ContainerPreset] | None = None


def _data_dir() -> Path:
    return Path(__file__).resolve().parents[3] / "data"


def load_presets(path: str | Path | None = None) -> dict[str, ContainerPreset]:
    """
    Lädt die Container-Vorlagen aus *container_presets.json*.

    *None* ⇒ ``data/container_presets.json`` relativ zum Projekt-Root (gecacht).
    """
    global _PRESETS  # noqa: PLW0603

    if _PRESETS is not None and path is None:
        return _PRESETS

    json_path = Path(path) if path else _data_dir() / "container_presets.json"
    try:
        raw = json.loads(json_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        logger.exception("container_presets.json enthält ungültiges JSON")
        raise PresetFormatError("container_presets.json enthält ungültiges JSON") from exc

    if not isinstance(raw, list):
        raise PresetFormatError("container_presets.json muss eine Liste enthalten")

    presets: dict[str, ContainerPreset] = {}
    for entry in raw:
        try:
            preset = ContainerPreset(**entry)
        except TypeError as exc:
            raise PresetFormatError(f"Fehlerhafte Vorlage: {entry!r}") from exc
        presets[preset.key] = preset

    if CUSTOM_PRESET not in presets:
        raise PresetFormatError("Vorlage 'custom' fehlt")

    if path is None:
        _PRESETS = presets
    return presets


# --------------------------------------------------------------------------- #
#  Formularmodell
# --------------------------------------------------------------------------- #
@dataclass(slots=True)
class ContainerForm:
    name: str = ""
    location_id: str = ""
    preset_type: str = CUSTOM_PRESET
    length: int = 10
    width: int = 8
    container_height: int = 3
    real_length: Optional[float] = None
    real_width: Optional[float] = None

    @classmethod
    def from_container(cls, container: Container) -> "ContainerForm":
        return cls(
            name=container.name,
            location_id=container.location_id or "",
            preset_type=container.preset_type,
            length=container.length,
            width=container.width,
            container_height=container.container_height,
            real_length=container.real_length,
            real_width=container.real_width,
        )

    @property
    def dimensions_locked(self) -> bool:
        """Maße sind nur bei „custom“ frei editierbar."""
        return self.preset_type != CUSTOM_PRESET

    def apply_preset(self, preset: ContainerPreset) -> None:
        self.preset_type = preset.key
        if preset.key == CUSTOM_PRESET:
            return
        self.length = preset.length
        self.width = preset.width
        self.container_height = preset.container_height
        self.real_length = preset.real_length
        self.real_width = preset.real_width
        if not self.name:
            self.name = preset.name

    def validate(self) -> Optional[str]:
        """Fehlermeldung für die Inline-Anzeige oder *None*."""
        if not self.name.strip():
            return "Container name is required"
        if not self.location_id:
            return "Please select a stage/location"
        if not MIN_GRID_CELLS <= int(self.length) <= MAX_GRID_CELLS:
            return f"Length must be between {MIN_GRID_CELLS} and {MAX_GRID_CELLS}"
        if not MIN_GRID_CELLS <= int(self.width) <= MAX_GRID_CELLS:
            return f"Width must be between {MIN_GRID_CELLS} and {MAX_GRID_CELLS}"
        if not MIN_LAYERS <= int(self.container_height) <= MAX_LAYERS:
            return f"Height must be between {MIN_LAYERS} and {MAX_LAYERS} layers"
        return None

    def to_document(self) -> Dict[str, Any]:
        return {
            "name": self.name.strip(),
            "location_id": self.location_id,
            "length": int(self.length),
            "width": int(self.width),
            "container_height": int(self.container_height),
            "preset_type": self.preset_type,
            "real_length": self.real_length,
            "real_width": self.real_width,
        }
