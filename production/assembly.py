# NG-HEADER: Nombre de archivo: assembly.py
# NG-HEADER: Ubicación: production/assembly.py
# NG-HEADER: Descripción: Armado de carros en dos pasos (crear carro y agregar artículos).
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Orquestador de armado de carros.

Flujo: IDLE → CREATING_CART → ADDING_ITEMS → DONE | FAILED_CREATE.

- Si la creación del carro falla no se intenta ningún artículo y la selección
  se conserva para reintentar.
- Cada artículo se agrega de forma independiente: un error queda registrado en
  ``item_errors`` y no frena, saltea ni revierte al resto ni al carro.
- Al terminar (con o sin errores por artículo) la selección se limpia.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from .backend import ProductionBackend
from .config import Settings, settings as default_settings
from .errors import (
    AssemblyInProgress,
    BackendError,
    CartCreationFailed,
    ItemAddFailed,
    ValidationRejected,
)
from .models import AssemblyResult, SelectionEntry
from .selection import SelectionState
from .types import AssemblyState

LOG = logging.getLogger("production.assembly")

_BUSY = (AssemblyState.CREATING_CART, AssemblyState.ADDING_ITEMS)


class CartAssemblyOrchestrator:
    def __init__(
        self,
        backend: ProductionBackend,
        selection: SelectionState,
        cfg: Optional[Settings] = None,
    ) -> None:
        self.backend = backend
        self.selection = selection
        self.cfg = cfg or default_settings
        self.state = AssemblyState.IDLE
        self.last_result: Optional[AssemblyResult] = None
        self.last_error: Optional[str] = None

    def _check_ready(self) -> int:
        consumer_id = self.selection.consumer_id
        if consumer_id is None:
            raise ValidationRejected("Debe seleccionar un usuario")
        if not self.selection.selected():
            raise ValidationRejected("Debe seleccionar al menos un artículo")
        invalid = self.selection.invalid_entries()
        if invalid:
            for e in invalid:
                LOG.error("Cantidad inválida para %s: %s", e.target_article, e.quantity)
            raise ValidationRejected(
                "Todas las cantidades deben ser mayores a 0",
                article=invalid[0].target_article,
            )
        return consumer_id

    async def assemble(self) -> AssemblyResult:
        if self.state in _BUSY:
            raise AssemblyInProgress("Ya hay un armado de carro en curso")
        self.state = AssemblyState.IDLE
        consumer_id = self._check_ready()
        entries = list(self.selection.selected())

        self.state = AssemblyState.CREATING_CART
        LOG.info("Creando carro para usuario %s con %d artículos", consumer_id, len(entries))
        try:
            cart_id = await self.backend.create_cart(consumer_id, self.cfg.cart_type)
        except BackendError as e:
            self.state = AssemblyState.FAILED_CREATE
            self.last_error = e.message
            LOG.error("Error al crear carro: %s", e.message)
            raise CartCreationFailed(e.message) from e

        self.state = AssemblyState.ADDING_ITEMS
        LOG.info("Carro creado con ID %s", cart_id)
        item_errors = await self._add_items(cart_id, consumer_id, entries)

        added = len(entries) - len(item_errors)
        result = AssemblyResult(cart_id=cart_id, added_count=added, total=len(entries), item_errors=item_errors)
        self.state = AssemblyState.DONE
        self.last_result = result
        self.last_error = None
        LOG.info("Artículos agregados al carro %s: %d/%d", cart_id, added, len(entries))
        self.selection.clear()
        return result

    async def _add_items(self, cart_id: int, consumer_id: int, entries: List[SelectionEntry]) -> Dict[str, str]:
        sem = asyncio.Semaphore(self.cfg.assembly_concurrency)

        async def _one(entry: SelectionEntry) -> Optional[ItemAddFailed]:
            async with sem:
                try:
                    await self.backend.add_cart_item(
                        cart_id,
                        article_code=entry.target_article,
                        description=entry.description or entry.target_article,
                        quantity=entry.quantity,
                        consumer_id=consumer_id,
                    )
                except BackendError as e:
                    LOG.warning("Error al agregar %s al carro %s: %s", entry.target_article, cart_id, e.message)
                    return ItemAddFailed(e.message, article=entry.target_article)
                except Exception as e:
                    LOG.exception("Error inesperado al agregar %s al carro %s", entry.target_article, cart_id)
                    return ItemAddFailed(str(e) or e.__class__.__name__, article=entry.target_article)
                LOG.debug("Agregado %s (%s) al carro %s", entry.target_article, entry.quantity, cart_id)
                return None

        outcomes = await asyncio.gather(*(_one(e) for e in entries))
        return {err.article: err.message for err in outcomes if err is not None and err.article}
