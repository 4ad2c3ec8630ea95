# tests/conftest.py
"""
Gemeinsame Fixtures für die Stowage-Planer-Tests
------------------------------------------------
* Qt läuft headless (``QT_QPA_PLATFORM=offscreen``).
* ``src/`` wird zu ``sys.path`` hinzugefügt, falls das Paket nicht installiert ist.
"""
from __future__ import annotations

import os
import pathlib
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# --------------------------------------------------------------------------- #
#  Quell-Pfad (src/) zu sys.path hinzufügen, falls nicht installiert
# --------------------------------------------------------------------------- #
PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if SRC_PATH.exists() and str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from stowage_planner.core.models import Container, StowageItem, CommittedId  # noqa: E402
from stowage_planner.core.session import StowageSession  # noqa: E402
from stowage_planner.core.store import MemoryDocumentStore  # noqa: E402


def make_item(key: str, x: float, y: float, **kwargs) -> StowageItem:
    """Persistiertes Item mit ID *key* an Prozentposition (x, y)."""
    return StowageItem(
        id=CommittedId(key),
        container_id=kwargs.pop("container_id", "c1"),
        gear_id=kwargs.pop("gear_id", f"gear-{key}"),
        x_position=x,
        y_position=y,
        **kwargs,
    )


# --------------------------------------------------------------------------- #
#  Fixtures
# --------------------------------------------------------------------------- #
@pytest.fixture()
def container() -> Container:
    """10 × 8 Zellen, 3 Ebenen, ohne Realmaße (1 Zelle ≈ 1 ft)."""
    return Container(
        id="c1",
        name="Van 1",
        location_id="main-stage",
        length=10,
        width=8,
        container_height=3,
    )


@pytest.fixture()
def seed_data() -> dict:
    return {
        "locations": {
            "main-stage": {"name": "Main Stage", "emoji": "🎸"},
            "tent-stage": {"name": "Tent Stage"},
        },
        "gear": {
            "g1": {"description": "Bass cabinet", "band_id": "The Night Owls",
                   "current_location_id": "main-stage", "display_id": 1},
            "g2": {"description": "Drum riser", "band_id": "The Night Owls",
                   "current_location_id": "main-stage", "display_id": 2},
            "g3": {"description": "Guitar amp", "band_id": "Velvet Static",
                   "current_location_id": "main-stage", "display_id": 3},
            "g4": {"description": "Merch crate", "band_id": "Velvet Static",
                   "current_location_id": "tent-stage", "display_id": 42},
            "g5": {"description": "Keyboard case", "band_id": "Velvet Static",
                   "current_location_id": "main-stage", "checked_out": True},
        },
        "containers": {
            "c1": {"name": "Van 1", "location_id": "main-stage", "length": 10,
                   "width": 8, "container_height": 3},
        },
        "stowage_items": {},
    }


@pytest.fixture()
def store(seed_data) -> MemoryDocumentStore:
    return MemoryDocumentStore(seed_data)


@pytest.fixture()
def session(store) -> StowageSession:
    sess = StowageSession(store)
    assert sess.load()
    return sess
