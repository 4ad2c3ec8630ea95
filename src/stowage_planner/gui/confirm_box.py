"""Qt-Darstellung einer `ConfirmationRequest` als Ja/Nein-Dialog."""

from __future__ import annotations

from typing import Any, Optional

from PySide6.QtWidgets import QMessageBox, QWidget

from stowage_planner.core.confirm import ConfirmationRequest


def ask(parent: Optional[QWidget], request: ConfirmationRequest) -> Any:
    ret = QMessageBox.question(
        parent,
        request.title,
        request.prompt,
        QMessageBox.Yes | QMessageBox.No,
        QMessageBox.No,
    )
    return request.resolve(ret == QMessageBox.Yes)
