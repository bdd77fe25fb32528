# NG-HEADER: Nombre de archivo: session.py
# NG-HEADER: Ubicación: production/session.py
# NG-HEADER: Descripción: Sesión de configuración de carros: fachada para la capa de presentación.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Sesión explícita de configuración de carros.

Reemplaza el estado global de la pantalla: cada sesión es dueña de su caché,
su selección y su orquestador. La capa de presentación sólo usa esta fachada:

- ``refresh()`` / ``resolve()``: faltantes → líneas resueltas y sugerencias.
- ``select()`` / ``deselect()`` / ``set_quantity()``: selección editable.
- ``assemble()``: crea el carro y agrega lo seleccionado.
- ``open_substitution()`` + ``transfer()``: sustitución de ingredientes.

Ejemplo:
    async with HttpProductionBackend() as backend:
        session = CartConfigurationSession(backend)
        await session.refresh()
        session.set_consumer(7)
        session.select("ING7")
        result = await session.assemble()
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Set

from .assembly import CartAssemblyOrchestrator
from .backend import ProductionBackend
from .cache import PACK, SUGGESTION, MappingCache
from .config import Settings, settings as default_settings
from .consolidator import consolidate
from .conversion import ConversionEngine
from .errors import ValidationRejected
from .logging_setup import setup_production_logger
from .models import (
    AssemblyResult,
    Article,
    Consumer,
    DeficitLine,
    ResolvedDemandLine,
    SelectionEntry,
    TransferResult,
)
from .resolver import DemandResolver
from .selection import SelectionState
from .substitution import SubstitutionTransferController, TransferTarget
from .types import AssemblyState

LOG = logging.getLogger("production.session")


@dataclass
class Resolution:
    lines: List[ResolvedDemandLine] = field(default_factory=list)
    suggestions: List[ResolvedDemandLine] = field(default_factory=list)

    def all(self) -> List[ResolvedDemandLine]:
        return [*self.lines, *self.suggestions]


class CartConfigurationSession:
    def __init__(self, backend: ProductionBackend, cfg: Optional[Settings] = None) -> None:
        self.cfg = cfg or default_settings
        setup_production_logger(self.cfg)
        self.backend = backend
        self.cache = MappingCache(backend, max_entries=self.cfg.cache_max_entries)
        self.resolver = DemandResolver(self.cache)
        self.conversion = ConversionEngine(self.cache, self.resolver)
        self.selection = SelectionState()
        self.orchestrator = CartAssemblyOrchestrator(backend, self.selection, self.cfg)
        self.deficits: List[DeficitLine] = []
        self.resolution = Resolution()
        self._index: Dict[str, ResolvedDemandLine] = {}
        self._suggested: Dict[str, ResolvedDemandLine] = {}
        self._packs_seen: Set[str] = set()
        self.substitution: Optional[SubstitutionTransferController] = None

    # ---- Ciclo de vida

    def reset(self) -> None:
        """Arranca una sesión de resolución nueva: limpia caché, selección y líneas."""
        self.cache.clear()
        self.selection.clear()
        self.deficits = []
        self.resolution = Resolution()
        self._index = {}
        self._suggested = {}
        self._packs_seen = set()
        self.substitution = None

    # ---- Usuarios

    async def list_consumers(self) -> List[Consumer]:
        return await self.backend.list_consumers()

    def set_consumer(self, consumer_id: Optional[int]) -> None:
        self.selection.consumer_id = consumer_id
        LOG.debug("Usuario seleccionado: %s", consumer_id)

    # ---- Resolución

    async def refresh(self, cutoff_date: Optional[date] = None) -> Resolution:
        """Vuelve a traer los faltantes del backend y recalcula la resolución."""
        deficits = await self.backend.fetch_deficits(cutoff_date)
        return await self.resolve(deficits)

    async def resolve(self, deficits: Optional[Iterable[DeficitLine]] = None) -> Resolution:
        if deficits is not None:
            self.deficits = list(deficits)
        pending = [d for d in self.deficits if d.deficit > 0]
        LOG.info("Resolviendo %d faltantes y parciales (de %d líneas)", len(pending), len(self.deficits))

        direct = await self.resolver.resolve(pending)
        suggested = await self.conversion.convert(pending)
        self.resolution = Resolution(lines=consolidate(direct), suggestions=consolidate(suggested))

        self._packs_seen.update(line.parent_article for line in direct if line.parent_article)
        # Las sugerencias no pisan a una línea directa con el mismo destino
        self._suggested = {line.target_article: line for line in self.resolution.suggestions}
        self._index = dict(self._suggested)
        self._index.update({line.target_article: line for line in self.resolution.lines})
        return self.resolution

    def line_for(self, target_article: str) -> Optional[ResolvedDemandLine]:
        return self._index.get(target_article)

    # ---- Selección

    def select(self, target_article: str, *, use_suggestion: bool = False) -> SelectionEntry:
        """Selecciona un destino. Con ``use_suggestion`` toma la cantidad de la sugerencia
        aunque exista una línea directa para el mismo artículo."""
        line = self._suggested.get(target_article) if use_suggestion else self._index.get(target_article)
        if line is None:
            raise ValidationRejected(
                f"El artículo {target_article} no está entre las líneas seleccionables",
                article=target_article,
            )
        entry = self.selection.select(target_article, line.quantity, description=line.description)
        if use_suggestion:
            entry.quantity = line.quantity
        return entry

    def deselect(self, target_article: str) -> bool:
        return self.selection.deselect(target_article)

    def set_quantity(self, target_article: str, value: Any) -> bool:
        return self.selection.set_quantity(target_article, value)

    def is_ready(self) -> bool:
        return self.selection.is_ready()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "lines": self.resolution.lines,
            "suggestions": self.resolution.suggestions,
            # destinos con línea directa y sugerencia: cantidad alternativa de la sugerencia
            "suggestion_overrides": {
                code: line.quantity
                for code, line in self._suggested.items()
                if self._index.get(code) is not line
            },
            "selection": self.selection.snapshot(),
            "assembly_state": self.orchestrator.state.value,
        }

    # ---- Armado

    async def assemble(self) -> AssemblyResult:
        result = await self.orchestrator.assemble()
        if self.orchestrator.state == AssemblyState.DONE:
            # el carro cambia el stock: los packs vistos se vuelven a consultar
            for code in self._packs_seen:
                self.cache.invalidate(code, PACK)
            self._packs_seen.clear()
        return result

    # ---- Sugerencias

    async def get_suggestion(self, code: str) -> Optional[Article]:
        return await self.cache.suggestion(code)

    async def set_suggestion(self, code: str, substitute_code: str) -> None:
        if not substitute_code:
            raise ValidationRejected("El artículo sugerido es requerido", article=code)
        if substitute_code == code:
            raise ValidationRejected("Un artículo no puede sugerirse a sí mismo", article=code)
        await self.backend.set_suggestion(code, substitute_code)
        self.cache.invalidate(code, SUGGESTION)
        LOG.info("Sugerencia guardada: %s → %s", code, substitute_code)

    async def clear_suggestion(self, code: str) -> None:
        await self.backend.delete_suggestion(code)
        self.cache.invalidate(code, SUGGESTION)
        LOG.info("Sugerencia eliminada para %s", code)

    # ---- Sustitución de ingredientes

    async def open_substitution(
        self,
        target: TransferTarget,
        deficit: float,
        *,
        cart_id: int,
        consumer_id: Optional[int] = None,
    ) -> SubstitutionTransferController:
        consumer = consumer_id if consumer_id is not None else self.selection.consumer_id
        if consumer is None:
            raise ValidationRejected("No hay carro activo o usuario seleccionado")
        controller = SubstitutionTransferController(
            self.backend,
            target,
            deficit,
            cart_id=cart_id,
            consumer_id=consumer,
        )
        await controller.load()
        self.substitution = controller
        return controller

    async def transfer(self, origin_id: int, quantity: Any) -> TransferResult:
        controller = self.substitution
        if controller is None:
            raise ValidationRejected("No hay una sustitución abierta")
        if controller.origin is None or controller.origin.ingredient_id != origin_id:
            controller.select_origin(origin_id)
        return await controller.confirm(quantity)

    def close_substitution(self) -> None:
        self.substitution = None
