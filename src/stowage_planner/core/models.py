from __future__ import annotations

import datetime
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Union


# --------------------------------------------------------------------------- #
#  Eigene Fehlertypen
# --------------------------------------------------------------------------- #
class ModelError(Exception):
    """Basisfehler für Modell-Operationen."""


class ValidationError(ModelError):
    """Fehlerhafte Eingabewerte oder unzulässiger Zustand."""


class DuplicatePlacementError(ValidationError):
    """Ein Gear-Item ist bereits in einem Container platziert."""


# --------------------------------------------------------------------------- #
#  Grenzwerte
# --------------------------------------------------------------------------- #
MIN_GRID_CELLS = 3
MAX_GRID_CELLS = 50
MIN_LAYERS = 1
MAX_LAYERS = 10

DEFAULT_ITEM_WIDTH_FT = 2.0
DEFAULT_ITEM_LENGTH_FT = 2.0


# --------------------------------------------------------------------------- #
#  Item-IDs (vorläufig / persistiert)
# --------------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class PendingId:
    """Client-seitige ID eines noch nicht gespeicherten Items."""

    token: str

    @property
    def is_pending(self) -> bool:
        return True

    def __str__(self) -> str:
        return f"pending:{self.token}"


@dataclass(frozen=True, slots=True)
class CommittedId:
    """Dauerhafte ID aus dem Dokumentenspeicher."""

    value: str

    @property
    def is_pending(self) -> bool:
        return False

    def __str__(self) -> str:
        return self.value


ItemId = Union[PendingId, CommittedId]


# --------------------------------------------------------------------------- #
#  Location
# --------------------------------------------------------------------------- #
@dataclass(slots=True)
class Location:
    id: str
    name: str
    emoji: str = ""

    @property
    def label(self) -> str:
        return f"{self.emoji} {self.name}".strip()

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> "Location":
        return cls(id=doc_id, name=data.get("name", ""), emoji=data.get("emoji") or "")


# --------------------------------------------------------------------------- #
#  GearItem (nur lesend)
# --------------------------------------------------------------------------- #
@dataclass(slots=True)
class GearItem:
    id: str
    description: str
    band_id: str = ""
    current_location_id: Optional[str] = None
    display_id: Optional[int] = None
    in_transit: bool = False
    checked_out: bool = False
    missing_status: Optional[str] = None

    @property
    def display_label(self) -> str:
        """``#0042`` – Anzeige-ID, vierstellig mit Nullen aufgefüllt."""
        return f"#{str(self.display_id or 0).zfill(4)}"

    @property
    def has_status_conflict(self) -> bool:
        return bool(self.in_transit or self.checked_out or self.missing_status)

    def is_available_at(self, location_id: Optional[str]) -> bool:
        """True, wenn das Item an *location_id* liegt und frei verfügbar ist."""
        return (
            location_id is not None
            and self.current_location_id == location_id
            and not self.has_status_conflict
        )

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> "GearItem":
        return cls(
            id=doc_id,
            description=data.get("description", ""),
            band_id=data.get("band_id") or "",
            current_location_id=data.get("current_location_id"),
            display_id=data.get("display_id"),
            in_transit=bool(data.get("in_transit", False)),
            checked_out=bool(data.get("checked_out", False)),
            missing_status=data.get("missing_status") or None,
        )


# --------------------------------------------------------------------------- #
#  Container
# --------------------------------------------------------------------------- #
@dataclass(slots=True)
class Container:
    id: str
    name: str
    location_id: Optional[str]
    length: int
    width: int
    container_height: int = 3
    real_length: Optional[float] = None
    real_width: Optional[float] = None
    preset_type: str = "custom"

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Container name is required")
        for label, value in (("Length", self.length), ("Width", self.width)):
            if not MIN_GRID_CELLS <= value <= MAX_GRID_CELLS:
                raise ValidationError(
                    f"{label} must be between {MIN_GRID_CELLS} and {MAX_GRID_CELLS}"
                )
        if not MIN_LAYERS <= self.container_height <= MAX_LAYERS:
            raise ValidationError(
                f"Height must be between {MIN_LAYERS} and {MAX_LAYERS} layers"
            )

    # ----------------------- Maße in Fuß ------------------------------- #
    @property
    def width_ft(self) -> float:
        """Breite in Fuß; ohne Realmaß gilt ≈1 Zelle pro Fuß."""
        return float(self.real_width or self.width)

    @property
    def length_ft(self) -> float:
        return float(self.real_length or self.length)

    @property
    def total_cells(self) -> int:
        return self.length * self.width

    def size_label(self) -> str:
        cells = f"{self.length}×{self.width} cells"
        if self.real_length and self.real_width:
            return f"{self.real_length:g}ft × {self.real_width:g}ft ({cells})"
        return cells

    # ----------------------- Serialisierung ---------------------------- #
    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "location_id": self.location_id,
            "length": self.length,
            "width": self.width,
            "container_height": self.container_height,
            "real_length": self.real_length,
            "real_width": self.real_width,
            "preset_type": self.preset_type,
        }

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> "Container":
        return cls(
            id=doc_id,
            name=data.get("name", ""),
            location_id=data.get("location_id"),
            length=int(data.get("length") or 10),
            width=int(data.get("width") or 8),
            container_height=int(data.get("container_height") or 3),
            real_length=data.get("real_length"),
            real_width=data.get("real_width"),
            preset_type=data.get("preset_type") or "custom",
        )


# --------------------------------------------------------------------------- #
#  StowageItem
# --------------------------------------------------------------------------- #
@dataclass(slots=True)
class StowageItem:
    id: ItemId
    container_id: str
    gear_id: str
    x_position: float = 0.0
    y_position: float = 0.0
    item_width: float = DEFAULT_ITEM_WIDTH_FT
    item_length: float = DEFAULT_ITEM_LENGTH_FT
    item_height: int = 1
    layer: int = 0
    paint_order: int = 0
    placed_by: Optional[str] = None
    placed_at: Optional[datetime.datetime] = field(default=None, compare=False)

    @property
    def is_pending(self) -> bool:
        return self.id.is_pending

    @property
    def key(self) -> str:
        """Stabiler String-Schlüssel (für Dicts, Qt-MIME-Daten, Logs)."""
        return str(self.id)

    @property
    def top_layer(self) -> int:
        """Erste Ebene *oberhalb* des Items."""
        return self.layer + self.item_height

    def with_changes(self, **changes: Any) -> "StowageItem":
        return replace(self, **changes)

    # ----------------------- Serialisierung ---------------------------- #
    def to_dict(self) -> Dict[str, Any]:
        return {
            "container_id": self.container_id,
            "gear_id": self.gear_id,
            "x_position": self.x_position,
            "y_position": self.y_position,
            "item_width": self.item_width,
            "item_length": self.item_length,
            "item_height": self.item_height,
            "layer": self.layer,
            "paint_order": self.paint_order,
            "placed_by": self.placed_by,
            "placed_at": self.placed_at.isoformat() if self.placed_at else None,
        }

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> "StowageItem":
        # Altbestand kennt nur "z" (Ebene und Zeichenreihenfolge in einem Feld)
        legacy_z = int(data.get("z") or 0)
        layer = data.get("layer")
        paint_order = data.get("paint_order")
        placed_at = data.get("placed_at")
        if isinstance(placed_at, str):
            placed_at = datetime.datetime.fromisoformat(placed_at)
        return cls(
            id=CommittedId(doc_id),
            container_id=data["container_id"],
            gear_id=data["gear_id"],
            x_position=float(data.get("x_position") or 0.0),
            y_position=float(data.get("y_position") or 0.0),
            item_width=float(data.get("item_width") or DEFAULT_ITEM_WIDTH_FT),
            item_length=float(data.get("item_length") or DEFAULT_ITEM_LENGTH_FT),
            item_height=int(data.get("item_height") or 1),
            layer=int(layer) if layer is not None else max(legacy_z, 0),
            paint_order=int(paint_order) if paint_order is not None else legacy_z,
            placed_by=data.get("placed_by"),
            placed_at=placed_at,
        )


# --------------------------------------------------------------------------- #
#  Suchtreffer
# --------------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class SearchResult:
    item_id: ItemId
    gear_id: str
    gear_description: str
    gear_display_label: str
    band_id: str
    container_id: str
    container_name: str
    location_id: Optional[str]
    x_position: float
    y_position: float
