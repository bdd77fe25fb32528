# NG-HEADER: Nombre de archivo: resolver.py
# NG-HEADER: Ubicación: production/resolver.py
# NG-HEADER: Descripción: Resuelve faltantes a artículos simples o componentes de pack.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Resolución de faltantes.

Regla: sólo se seleccionan HIJOS de packs y artículos SIMPLES. El padre de un
pack queda como referencia de sólo lectura (``parent_article``).
"""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional

from .cache import MappingCache
from .errors import LookupDegraded
from .models import DeficitLine, ResolvedDemandLine
from .types import DemandKind

LOG = logging.getLogger("production.resolver")


class DemandResolver:
    def __init__(self, cache: MappingCache) -> None:
        self.cache = cache

    async def resolve_line(self, line: DeficitLine) -> Optional[ResolvedDemandLine]:
        deficit = line.deficit
        if deficit <= 0:
            return None
        art = line.article
        try:
            mapping = await self.cache.pack_mapping(art.numero)
        except LookupDegraded as e:
            # fail-open: el usuario puede corregir un artículo sin expandir,
            # no uno que desaparece de la lista
            LOG.warning("Pack mapping no disponible para %s, se trata como simple: %s", art.numero, e.message)
            mapping = None

        if mapping is None:
            return ResolvedDemandLine(
                target_article=art.numero,
                quantity=deficit,
                kind=DemandKind.SIMPLE,
                origin_articles=[art.numero],
                description=art.label,
                codigo_barras=art.codigo_barras,
            )

        component = mapping.component
        LOG.debug("Pack %s → hijo %s (%sx)", art.numero, component.numero, mapping.units_per_pack)
        return ResolvedDemandLine(
            target_article=component.numero,
            quantity=deficit * mapping.units_per_pack,
            kind=DemandKind.PACK_COMPONENT,
            origin_articles=[art.numero],
            description=component.label,
            codigo_barras=component.codigo_barras,
            parent_article=art.numero,
            units_per_pack=mapping.units_per_pack,
        )

    async def resolve(self, lines: Iterable[DeficitLine]) -> List[ResolvedDemandLine]:
        """Resuelve en paralelo; el resultado respeta el orden de entrada."""
        results = await asyncio.gather(*(self.resolve_line(line) for line in lines))
        return [r for r in results if r is not None]
