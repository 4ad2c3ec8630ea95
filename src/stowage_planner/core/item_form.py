"""
Formularmodell für „Item platzieren/bearbeiten“.

Geprüft wird nur, ob ein Gear-Item gewählt ist; alle Zahlenfelder werden
so übernommen, wie sie eingegeben wurden (Min/Max sind reine UI-Hinweise).
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .models import Container, StowageItem

NO_GEAR_MESSAGE = "Please select a gear item"


@dataclass(slots=True)
class ItemForm:
    container: Container
    gear_id: str = ""
    item_width: float = 2.0
    item_length: float = 2.0
    x_position: float = 25.0
    y_position: float = 25.0
    layer: int = 0
    stack_height: int = 1
    existing: Optional[StowageItem] = None
    is_new_placement: bool = False

    @classmethod
    def for_item(
        cls, container: Container, item: StowageItem, *, is_new_placement: bool = False
    ) -> "ItemForm":
        """Vorbelegung aus bestehendem oder per Drop/Zellklick erzeugtem Item."""
        return cls(
            container=container,
            gear_id=item.gear_id or "",
            item_width=item.item_width or 2.0,
            item_length=item.item_length or 2.0,
            x_position=item.x_position or 25.0,
            y_position=item.y_position or 25.0,
            layer=item.layer or 0,
            stack_height=item.item_height or 1,
            existing=item,
            is_new_placement=is_new_placement,
        )

    @property
    def is_update(self) -> bool:
        return self.existing is not None and not self.is_new_placement

    @property
    def title(self) -> str:
        return "Edit Item" if self.is_update else "Place Item"

    def layer_choices(self) -> List[Tuple[int, str]]:
        return [
            (i, "Ground" if i == 0 else f"Layer {i}")
            for i in range(self.container.container_height)
        ]

    def max_stack_height(self) -> int:
        return max(1, self.container.container_height - int(self.layer))

    def size_limits(self) -> Tuple[float, float]:
        """(max Breite, max Länge) in Fuß – nur als UI-Hinweis."""
        return self.container.width_ft, self.container.length_ft

    def validate(self) -> Optional[str]:
        if not self.gear_id:
            return NO_GEAR_MESSAGE
        return None

    def to_changes(self, placed_by: str = "current_user") -> Dict[str, Any]:
        return {
            "gear_id": self.gear_id,
            "x_position": float(self.x_position),
            "y_position": float(self.y_position),
            "layer": int(self.layer),
            "item_width": float(self.item_width),
            "item_length": float(self.item_length),
            "item_height": int(self.stack_height),
            "container_id": self.container.id,
            "placed_by": placed_by,
            "placed_at": datetime.datetime.now(datetime.timezone.utc),
        }
