"""Dialog „Container anlegen/bearbeiten“ mit Größen-Presets."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence

from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QDoubleSpinBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from stowage_planner.core.models import (
    MAX_GRID_CELLS,
    MAX_LAYERS,
    MIN_GRID_CELLS,
    MIN_LAYERS,
    Container,
    Location,
)
from stowage_planner.core.presets import ContainerForm, ContainerPreset
from stowage_planner.core.session import StowageSession
from stowage_planner.gui.confirm_box import ask

logger = logging.getLogger(__name__)


class ContainerDialog(QDialog):
    """Bei gewähltem Preset sind die Maße gesperrt; nur „custom“ ist frei."""

    def __init__(
        self,
        session: StowageSession,
        presets: Dict[str, ContainerPreset],
        locations: Sequence[Location],
        editing: Optional[Container] = None,
        default_location_id: Optional[str] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._session = session
        self._presets = presets
        self.editing = editing
        self.saved: Optional[Container] = None
        self.form = ContainerForm.from_container(editing) if editing else ContainerForm(
            location_id=default_location_id or ""
        )
        self.setWindowTitle("Edit Container" if editing else "New Container")

        self._edit_name = QLineEdit(self.form.name, self)

        self._combo_location = QComboBox(self)
        self._combo_location.addItem("— select location —", "")
        for loc in locations:
            self._combo_location.addItem(loc.label, loc.id)
        self._combo_location.setCurrentIndex(max(self._combo_location.findData(self.form.location_id), 0))

        self._combo_preset = QComboBox(self)
        for preset in presets.values():
            self._combo_preset.addItem(preset.label, preset.key)
        self._combo_preset.setCurrentIndex(max(self._combo_preset.findData(self.form.preset_type), 0))
        self._combo_preset.currentIndexChanged.connect(self._on_preset_changed)

        self._spin_length = self._cells_spin(self.form.length)
        self._spin_width = self._cells_spin(self.form.width)
        self._spin_height = QSpinBox(self)
        self._spin_height.setRange(MIN_LAYERS, MAX_LAYERS)
        self._spin_height.setValue(self.form.container_height)

        self._spin_real_length = self._feet_spin(self.form.real_length)
        self._spin_real_width = self._feet_spin(self.form.real_width)

        self._lbl_error = QLabel(self)
        self._lbl_error.setStyleSheet("color: #c0392b;")
        self._lbl_error.hide()

        fields = QFormLayout()
        fields.addRow("Name", self._edit_name)
        fields.addRow("Location", self._combo_location)
        fields.addRow("Size preset", self._combo_preset)
        fields.addRow("Length (cells)", self._spin_length)
        fields.addRow("Width (cells)", self._spin_width)
        fields.addRow("Height (layers)", self._spin_height)
        fields.addRow("Real length (ft)", self._spin_real_length)
        fields.addRow("Real width (ft)", self._spin_real_width)

        buttons = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel, self)
        buttons.accepted.connect(self._on_save)
        buttons.rejected.connect(self.reject)
        self.btn_delete: Optional[QPushButton] = None
        if editing is not None:
            self.btn_delete = buttons.addButton("Delete", QDialogButtonBox.DestructiveRole)
            self.btn_delete.clicked.connect(self._on_delete)

        layout = QVBoxLayout(self)
        layout.addLayout(fields)
        layout.addWidget(self._lbl_error)
        layout.addWidget(buttons)
        self._sync_locks()

    # ------------------------------------------------------------------ #
    def _cells_spin(self, value: int) -> QSpinBox:
        spin = QSpinBox(self)
        spin.setRange(MIN_GRID_CELLS, MAX_GRID_CELLS)
        spin.setValue(value)
        return spin

    def _feet_spin(self, value: Optional[float]) -> QDoubleSpinBox:
        spin = QDoubleSpinBox(self)
        spin.setRange(0.0, 200.0)
        spin.setSpecialValueText("—")
        spin.setValue(value or 0.0)
        return spin

    def _sync_locks(self) -> None:
        locked = self.form.dimensions_locked
        for spin in (
            self._spin_length,
            self._spin_width,
            self._spin_height,
            self._spin_real_length,
            self._spin_real_width,
        ):
            spin.setEnabled(not locked)

    def _on_preset_changed(self) -> None:
        preset = self._presets.get(self._combo_preset.currentData())
        if preset is None:
            return
        self.form.name = self._edit_name.text()
        self.form.apply_preset(preset)
        self._edit_name.setText(self.form.name)
        self._spin_length.setValue(self.form.length)
        self._spin_width.setValue(self.form.width)
        self._spin_height.setValue(self.form.container_height)
        self._spin_real_length.setValue(self.form.real_length or 0.0)
        self._spin_real_width.setValue(self.form.real_width or 0.0)
        self._sync_locks()

    def collect(self) -> ContainerForm:
        self.form.name = self._edit_name.text()
        self.form.location_id = self._combo_location.currentData() or ""
        self.form.preset_type = self._combo_preset.currentData() or self.form.preset_type
        self.form.length = self._spin_length.value()
        self.form.width = self._spin_width.value()
        self.form.container_height = self._spin_height.value()
        self.form.real_length = self._spin_real_length.value() or None
        self.form.real_width = self._spin_real_width.value() or None
        return self.form

    def show_error(self, message: str) -> None:
        self._lbl_error.setText(message)
        self._lbl_error.show()

    # ------------------------------------------------------------------ #
    def _on_save(self) -> None:
        form = self.collect()
        error = form.validate()
        if error:
            self.show_error(error)
            return
        saved = self._session.save_container(form, self.editing)
        if saved is None:
            self.show_error(self._session.message)
            return
        self.saved = saved
        overflow = self._session.out_of_bounds_items(saved)
        if overflow:
            logger.info("%d Items ragen über den Container %s hinaus", len(overflow), saved.id)
        self.accept()

    def _on_delete(self) -> None:
        if self.editing is None:
            return
        request = self._session.request_delete_container(self.editing)
        ask(self, request)
        if request.accepted:
            self.accept()
