# NG-HEADER: Nombre de archivo: selection.py
# NG-HEADER: Ubicación: production/selection.py
# NG-HEADER: Descripción: Estado de selección de líneas para armar un carro.
# NG-HEADER: Lineamientos: Ver AGENTS.md
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

from .models import SelectionEntry

LOG = logging.getLogger("production.selection")


def parse_quantity(value: Any) -> Optional[float]:
    """Convierte la entrada del usuario a float; None si no es un número finito."""
    if isinstance(value, bool):
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(v):
        return None
    return v


class SelectionState:
    """Líneas elegidas para el próximo carro, indexadas por artículo destino.

    Deseleccionar elimina la entrada: volver a seleccionar arranca otra vez
    desde la cantidad resuelta.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, SelectionEntry] = {}
        self.consumer_id: Optional[int] = None

    def select(self, target_article: str, default_quantity: float, description: Optional[str] = None) -> SelectionEntry:
        entry = self._entries.get(target_article)
        if entry is None:
            entry = SelectionEntry(
                target_article=target_article,
                quantity=float(default_quantity),
                description=description,
            )
            self._entries[target_article] = entry
            LOG.debug("Seleccionado %s (%s)", target_article, entry.quantity)
        else:
            entry.selected = True
        return entry

    def deselect(self, target_article: str) -> bool:
        removed = self._entries.pop(target_article, None) is not None
        if removed:
            LOG.debug("Deseleccionado %s", target_article)
        return removed

    def set_quantity(self, target_article: str, value: Any) -> bool:
        """Sobrescribe la cantidad. Valores no finitos o negativos se ignoran."""
        entry = self._entries.get(target_article)
        if entry is None:
            return False
        qty = parse_quantity(value)
        if qty is None or qty < 0:
            LOG.debug("Cantidad rechazada para %s: %r", target_article, value)
            return False
        entry.quantity = qty
        return True

    def get(self, target_article: str) -> Optional[SelectionEntry]:
        return self._entries.get(target_article)

    def selected(self) -> List[SelectionEntry]:
        return [e for e in self._entries.values() if e.selected]

    def invalid_entries(self) -> List[SelectionEntry]:
        return [e for e in self.selected() if e.quantity <= 0]

    def is_ready(self) -> bool:
        if self.consumer_id is None:
            return False
        return any(e.quantity > 0 for e in self.selected())

    def clear(self) -> None:
        self._entries.clear()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "consumer_id": self.consumer_id,
            "ready": self.is_ready(),
            "entries": [
                {
                    "target_article": e.target_article,
                    "quantity": e.quantity,
                    "selected": e.selected,
                    "description": e.description,
                }
                for e in self._entries.values()
            ],
        }

    def __contains__(self, target_article: object) -> bool:
        return target_article in self._entries

    def __len__(self) -> int:
        return len(self._entries)
