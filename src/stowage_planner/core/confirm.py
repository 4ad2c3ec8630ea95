"""
Bestätigungsanfragen für destruktive Aktionen.

Statt blockierender Dialoge liefert die Kernlogik eine `ConfirmationRequest`
zurück; die Oberfläche zeigt sie als Ja/Nein-Dialog und ruft `resolve()` auf.
So bleibt der Kern ohne GUI testbar.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ConfirmationRequest:
    title: str
    prompt: str
    on_accept: Callable[[], Any]
    resolved: bool = field(default=False, init=False)
    accepted: Optional[bool] = field(default=None, init=False)

    def resolve(self, accepted: bool) -> Any:
        """Führt die Aktion genau einmal aus – und nur bei Zustimmung."""
        if self.resolved:
            logger.debug("Bestätigung '%s' bereits aufgelöst", self.title)
            return None
        self.resolved = True
        self.accepted = accepted
        if not accepted:
            logger.debug("Aktion '%s' abgelehnt", self.title)
            return None
        return self.on_accept()

    def accept(self) -> Any:
        return self.resolve(True)

    def reject(self) -> None:
        self.resolve(False)


__all__ = ["ConfirmationRequest"]
