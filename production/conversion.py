# NG-HEADER: Nombre de archivo: conversion.py
# NG-HEADER: Ubicación: production/conversion.py
# NG-HEADER: Descripción: Factor de conversión entre un artículo y su sustituto sugerido.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Motor de conversión para sugerencias de producción.

El faltante de un artículo se traduce a unidades del sustituto con

    factor(origen, sustituto) = consumo(origen, sustituto) / consumo(sustituto, origen)

donde ``consumo(a, b)`` es la cantidad del ingrediente llamado ``b`` en la
receta de ``a``. Sin coincidencia exacta se usa el primer ingrediente de la
receta (aproximación heredada, pendiente de confirmar con producto) y se deja
constancia en el log. Sin receta, el consumo es 1.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional

from .cache import MappingCache
from .errors import LookupDegraded
from .models import DeficitLine, ResolvedDemandLine
from .resolver import DemandResolver
from .types import DemandKind

LOG = logging.getLogger("production.conversion")

IDENTITY = 1.0


class ConversionEngine:
    def __init__(self, cache: MappingCache, resolver: DemandResolver) -> None:
        self.cache = cache
        self.resolver = resolver

    async def unit_consumption(self, article: str, reference: str) -> float:
        try:
            recipe = await self.cache.recipe(article)
        except LookupDegraded as e:
            LOG.warning("Receta no disponible para %s, sin conversión: %s", article, e.message)
            return IDENTITY
        if recipe is None or not recipe.ingredients:
            return IDENTITY

        for ing in recipe.ingredients:
            if ing.name == reference:
                return ing.quantity

        first = recipe.ingredients[0]
        LOG.warning(
            "Receta de %s sin ingrediente %s; se usa el primer ingrediente %s (%s)",
            article,
            reference,
            first.name,
            first.quantity,
            extra={"article": article, "expected": reference, "used": first.name},
        )
        return first.quantity

    async def factor(self, origin: str, substitute: str) -> float:
        origin_uc, substitute_uc = await asyncio.gather(
            self.unit_consumption(origin, substitute),
            self.unit_consumption(substitute, origin),
        )
        if substitute_uc <= 0:
            LOG.warning("Consumo unitario inválido (%s) para %s; factor 1", substitute_uc, substitute)
            return IDENTITY
        return origin_uc / substitute_uc

    async def convert_line(self, line: DeficitLine) -> Optional[ResolvedDemandLine]:
        origin = line.article.numero
        if line.deficit <= 0:
            return None
        try:
            substitute = await self.cache.suggestion(origin)
        except LookupDegraded as e:
            LOG.warning("Sugerencia no disponible para %s: %s", origin, e.message)
            return None
        if substitute is None:
            return None

        # Un pack se expande primero: el consumo se busca con el código del hijo
        expanded = await self.resolver.resolve_line(line)
        if expanded is None:
            return None
        f = await self.factor(expanded.target_article, substitute.numero)
        quantity = expanded.quantity * f
        LOG.debug(
            "Sugerencia %s → %s: %s x %s = %s",
            expanded.target_article,
            substitute.numero,
            expanded.quantity,
            f,
            quantity,
        )
        return ResolvedDemandLine(
            target_article=substitute.numero,
            quantity=quantity,
            kind=DemandKind.SUGGESTION,
            origin_articles=[origin],
            description=substitute.label,
            codigo_barras=substitute.codigo_barras,
        )

    async def convert(self, lines: Iterable[DeficitLine]) -> List[ResolvedDemandLine]:
        results = await asyncio.gather(*(self.convert_line(line) for line in lines))
        return [r for r in results if r is not None]
