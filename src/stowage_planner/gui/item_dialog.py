"""Modal „Item platzieren/bearbeiten“ auf Basis von `ItemForm`."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QDoubleSpinBox,
    QFormLayout,
    QLabel,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from stowage_planner.core.item_form import ItemForm
from stowage_planner.core.models import MAX_LAYERS, DuplicatePlacementError, GearItem
from stowage_planner.core.session import StowageSession
from stowage_planner.gui.confirm_box import ask

logger = logging.getLogger(__name__)


class ItemDialog(QDialog):
    """Bleibt bei Validierungsfehlern offen und zeigt die Meldung inline."""

    def __init__(
        self,
        session: StowageSession,
        form: ItemForm,
        gear_choices: Sequence[GearItem],
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._session = session
        self.form = form
        self.setWindowTitle(form.title)

        self._combo_gear = QComboBox(self)
        self._combo_gear.addItem("— select gear —", "")
        for gear_item in gear_choices:
            self._combo_gear.addItem(
                f"{gear_item.display_label} {gear_item.description} ({gear_item.band_id})".strip(),
                gear_item.id,
            )
        idx = self._combo_gear.findData(form.gear_id)
        self._combo_gear.setCurrentIndex(max(idx, 0))

        max_w, max_l = form.size_limits()
        self._spin_width = self._feet_spin(form.item_width, f"Container width: {max_w:g} ft")
        self._spin_length = self._feet_spin(form.item_length, f"Container length: {max_l:g} ft")
        self._spin_x = self._percent_spin(form.x_position)
        self._spin_y = self._percent_spin(form.y_position)

        self._combo_layer = QComboBox(self)
        for value, label in form.layer_choices():
            self._combo_layer.addItem(label, value)
        self._combo_layer.setCurrentIndex(max(self._combo_layer.findData(form.layer), 0))

        self._spin_height = QSpinBox(self)
        self._spin_height.setRange(1, MAX_LAYERS)
        self._spin_height.setValue(form.stack_height)
        self._combo_layer.currentIndexChanged.connect(self._update_height_hint)

        self._lbl_error = QLabel(self)
        self._lbl_error.setStyleSheet("color: #c0392b;")
        self._lbl_error.hide()

        fields = QFormLayout()
        fields.addRow("Gear item", self._combo_gear)
        fields.addRow("Width (ft)", self._spin_width)
        fields.addRow("Length (ft)", self._spin_length)
        fields.addRow("X position (%)", self._spin_x)
        fields.addRow("Y position (%)", self._spin_y)
        fields.addRow("Layer", self._combo_layer)
        fields.addRow("Stack height", self._spin_height)

        buttons = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel, self)
        buttons.accepted.connect(self._on_save)
        buttons.rejected.connect(self.reject)
        self.btn_delete: Optional[QPushButton] = None
        if form.is_update:
            self.btn_delete = buttons.addButton("Remove", QDialogButtonBox.DestructiveRole)
            self.btn_delete.clicked.connect(self._on_delete)

        layout = QVBoxLayout(self)
        layout.addLayout(fields)
        layout.addWidget(self._lbl_error)
        layout.addWidget(buttons)
        self._update_height_hint()

    # ------------------------------------------------------------------ #
    def _feet_spin(self, value: float, hint: str) -> QDoubleSpinBox:
        spin = QDoubleSpinBox(self)
        spin.setRange(0.5, 1000.0)
        spin.setSingleStep(0.5)
        spin.setValue(value)
        spin.setToolTip(hint)
        return spin

    def _percent_spin(self, value: float) -> QDoubleSpinBox:
        spin = QDoubleSpinBox(self)
        spin.setRange(0.0, 100.0)
        spin.setDecimals(1)
        spin.setValue(value)
        return spin

    def _update_height_hint(self) -> None:
        self.form.layer = int(self._combo_layer.currentData() or 0)
        self._spin_height.setToolTip(f"Up to {self.form.max_stack_height()} layers fit")

    def collect(self) -> ItemForm:
        """Widget-Werte ins Formularmodell übernehmen."""
        self.form.gear_id = self._combo_gear.currentData() or ""
        self.form.item_width = self._spin_width.value()
        self.form.item_length = self._spin_length.value()
        self.form.x_position = self._spin_x.value()
        self.form.y_position = self._spin_y.value()
        self.form.layer = int(self._combo_layer.currentData() or 0)
        self.form.stack_height = self._spin_height.value()
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
        try:
            saved = self._session.save_item(form)
        except DuplicatePlacementError as exc:
            logger.info("Item nicht gespeichert: %s", exc)
            self.show_error(str(exc))
            return
        if saved is None:
            self.show_error(self._session.message)
            return
        self.accept()

    def _on_delete(self) -> None:
        if self.form.existing is None:
            return
        request = self._session.request_delete_item(self.form.existing)
        ask(self, request)
        if request.accepted:
            self.accept()
