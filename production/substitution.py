# NG-HEADER: Nombre de archivo: substitution.py
# NG-HEADER: Ubicación: production/substitution.py
# NG-HEADER: Descripción: Sustitución de ingredientes: usar stock de uno para cubrir el faltante de otro.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Controlador del diálogo de sustitución de ingredientes.

Flujo continuo: tras una transferencia exitosa el diálogo no se cierra; el
stock del origen y el faltante del destino se actualizan localmente para
poder cubrir un mismo faltante con varias transferencias parciales. El
filtro de texto sobre los candidatos se conserva.

Validación (sincrónica, sin I/O):
- Bloqueante: cantidad no positiva/no numérica, o mayor al stock del origen.
- Advertencia: cantidad mayor al faltante restante (se asigna el excedente).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from .backend import ProductionBackend
from .errors import BackendError, TransferFailed, ValidationRejected
from .models import IngredientStock, TransferResult, ValidationResult
from .selection import parse_quantity
from .types import TransferState, ValidationLevel

LOG = logging.getLogger("production.substitution")

COMPLETE_TOLERANCE = 0.01
# decimales con los que el backend guarda stock
QTY_DECIMALS = 6


def _qty(value: float) -> float:
    return round(value, QTY_DECIMALS)


def _fmt(qty: float, unit: Optional[str]) -> str:
    return f"{qty:.2f} {unit}" if unit else f"{qty:.2f}"


@dataclass(frozen=True)
class TransferTarget:
    ingredient_id: int
    name: str
    unit: Optional[str]


class SubstitutionTransferController:
    def __init__(
        self,
        backend: ProductionBackend,
        target: TransferTarget,
        deficit: float,
        *,
        cart_id: int,
        consumer_id: int,
    ) -> None:
        self.backend = backend
        self.target = target
        self.cart_id = cart_id
        self.consumer_id = consumer_id
        self.remaining_deficit = max(0.0, float(deficit))
        self.state = TransferState.IDLE
        self.origin: Optional[IngredientStock] = None
        self.filter_text = ""
        self.last_validation: Optional[ValidationResult] = None
        self.last_error: Optional[str] = None
        self._available: List[IngredientStock] = []

    # ---- Candidatos

    async def load(self) -> List[IngredientStock]:
        """Trae el stock y deja sólo ingredientes de la misma unidad, con stock, distintos del destino."""
        stock = await self.backend.list_ingredients_with_stock(self.cart_id)
        self._available = sorted(
            (
                ing
                for ing in stock
                if ing.ingredient_id != self.target.ingredient_id
                and ing.unit == self.target.unit
                and ing.stock_available > 0
            ),
            key=lambda ing: ing.name.lower(),
        )
        self.origin = None
        self.state = TransferState.IDLE
        LOG.info(
            "%d ingredientes disponibles para sustituir %s (%s)",
            len(self._available),
            self.target.name,
            self.target.unit,
        )
        return self.candidates

    @property
    def candidates(self) -> List[IngredientStock]:
        term = self.filter_text.strip().lower()
        if not term:
            return list(self._available)
        return [ing for ing in self._available if term in ing.name.lower()]

    def set_filter(self, text: str) -> List[IngredientStock]:
        self.filter_text = text or ""
        return self.candidates

    def select_origin(self, ingredient_id: int) -> float:
        """Selecciona el origen y devuelve la cantidad sugerida (mín. entre faltante y stock)."""
        origin = next((ing for ing in self._available if ing.ingredient_id == ingredient_id), None)
        if origin is None:
            raise ValidationRejected(f"Ingrediente {ingredient_id} no disponible para sustitución")
        self.origin = origin
        self.state = TransferState.ORIGIN_SELECTED
        self.last_validation = None
        return min(self.remaining_deficit, origin.stock_available)

    # ---- Validación

    def validate(self, quantity: Any) -> ValidationResult:
        origin = self.origin
        if origin is None:
            raise ValidationRejected("Debe seleccionar un ingrediente origen")
        self.state = TransferState.VALIDATING
        qty = parse_quantity(quantity)
        if qty is None or qty <= 0:
            result = ValidationResult(ValidationLevel.ERROR, "Debe ingresar una cantidad mayor a 0")
        elif _qty(qty) > _qty(origin.stock_available):
            result = ValidationResult(
                ValidationLevel.ERROR,
                f"La cantidad no puede exceder el stock disponible ({_fmt(origin.stock_available, origin.unit)})",
            )
        else:
            preview = max(0.0, _qty(self.remaining_deficit - qty))
            message = None
            level = ValidationLevel.OK
            if _qty(qty) > _qty(self.remaining_deficit):
                level = ValidationLevel.WARNING
                message = (
                    f"La cantidad ingresada ({qty:.2f}) es mayor al faltante "
                    f"({self.remaining_deficit:.2f}). Se asignará el excedente."
                )
            result = ValidationResult(
                level,
                message,
                remaining_preview=preview,
                complete=preview <= COMPLETE_TOLERANCE,
            )
        self.last_validation = result
        return result

    # ---- Transferencia

    async def confirm(self, quantity: Any) -> TransferResult:
        result = self.validate(quantity)
        origin = self.origin
        if not result.ok or origin is None:
            self.state = TransferState.ORIGIN_SELECTED
            raise ValidationRejected(result.message or "Cantidad inválida", article=self.target.name)
        qty = float(quantity)

        self.state = TransferState.TRANSFERRING
        LOG.info(
            "Sustituyendo %s %s de %s para cubrir %s (carro %s)",
            qty,
            origin.unit,
            origin.name,
            self.target.name,
            self.cart_id,
        )
        try:
            backend_message = await self.backend.transfer_ingredient(
                origin_id=origin.ingredient_id,
                target_id=self.target.ingredient_id,
                quantity=qty,
                cart_id=self.cart_id,
                consumer_id=self.consumer_id,
            )
        except BackendError as e:
            self.state = TransferState.ERROR
            self.last_error = e.message
            LOG.warning("Falló la sustitución %s → %s: %s", origin.name, self.target.name, e.message)
            raise TransferFailed(e.message, article=self.target.name) from e
        except Exception:
            self.state = TransferState.ERROR
            raise

        # Sólo después de confirmar el backend se toca el estado local
        origin.stock_available = _qty(origin.stock_available - qty)
        self.remaining_deficit = max(0.0, _qty(self.remaining_deficit - qty))
        self.last_error = None
        self.last_validation = None
        if origin.stock_available <= 0:
            self._available = [ing for ing in self._available if ing.ingredient_id != origin.ingredient_id]
            self.origin = None
            self.state = TransferState.IDLE
        else:
            self.state = TransferState.ORIGIN_SELECTED

        message = backend_message or (
            f'Se asignaron {_fmt(qty, origin.unit)} de "{origin.name}" para cubrir "{self.target.name}"'
        )
        return TransferResult(
            success=True,
            message=message,
            updated_stock=origin.stock_available,
            remaining_deficit=self.remaining_deficit,
        )
