# NG-HEADER: Nombre de archivo: cache.py
# NG-HEADER: Ubicación: production/cache.py
# NG-HEADER: Descripción: Caché de sesión para packs, recetas y sugerencias con deduplicación en vuelo.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Caché de consultas por código de artículo.

- Una tabla por tipo de consulta (pack, receta, sugerencia), acotada por LRU.
- Caché negativo explícito: "no es pack" / "sin receta" se guarda como None.
- Consultas concurrentes del mismo código comparten un único fetch en vuelo.
- Los errores no se cachean; se convierten en ``LookupDegraded``.
"""
from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from .backend import ProductionBackend
from .errors import BackendError, LookupDegraded
from .models import Article, PackMapping, Recipe

LOG = logging.getLogger("production.cache")

PACK = "pack"
RECIPE = "recipe"
SUGGESTION = "suggestion"
TABLES = (PACK, RECIPE, SUGGESTION)


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    shared: int = 0  # esperas sobre un fetch ya en vuelo
    evictions: int = 0


class MappingCache:
    def __init__(self, backend: ProductionBackend, max_entries: int = 512) -> None:
        self._backend = backend
        self.max_entries = max(1, int(max_entries))
        self._tables: Dict[str, "OrderedDict[str, Any]"] = {t: OrderedDict() for t in TABLES}
        self._pending: Dict[Tuple[str, str], "asyncio.Future[Any]"] = {}
        self.stats = CacheStats()

    # ---- Consultas tipadas

    async def pack_mapping(self, code: str) -> Optional[PackMapping]:
        return await self._lookup(PACK, code, self._backend.get_pack_mapping)

    async def recipe(self, code: str) -> Optional[Recipe]:
        return await self._lookup(RECIPE, code, self._backend.get_recipe)

    async def suggestion(self, code: str) -> Optional[Article]:
        return await self._lookup(SUGGESTION, code, self._backend.get_suggestion)

    async def _lookup(self, table: str, code: str, fetch: Callable[[str], Awaitable[Any]]) -> Any:
        try:
            return await self.get_or_fetch(table, code, lambda: fetch(code))
        except BackendError as e:
            raise LookupDegraded(f"Falló la consulta de {table} para {code}: {e.message}", article=code) from e

    # ---- Núcleo

    async def get_or_fetch(self, table: str, code: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        store = self._tables[table]
        if code in store:
            store.move_to_end(code)
            self.stats.hits += 1
            return store[code]

        key = (table, code)
        pending = self._pending.get(key)
        if pending is not None:
            self.stats.shared += 1
            # shield: cancelar a un waiter no debe cancelar el fetch compartido
            return await asyncio.shield(pending)

        self.stats.misses += 1
        fut: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()
        self._pending[key] = fut
        try:
            value = await fetch()
        except BaseException as e:
            if self._pending.get(key) is fut:
                self._pending.pop(key)
            if isinstance(e, Exception):
                fut.set_exception(e)
                fut.exception()  # marcar como recuperada aunque no haya waiters
            else:
                fut.cancel()
            raise
        # clear()/invalidate() durante el fetch lo sacan de pendientes: no se guarda
        if self._pending.get(key) is fut:
            self._pending.pop(key)
            self._store(table, code, value)
        fut.set_result(value)
        return value

    def _store(self, table: str, code: str, value: Any) -> None:
        store = self._tables[table]
        store[code] = value
        store.move_to_end(code)
        while len(store) > self.max_entries:
            evicted, _ = store.popitem(last=False)
            self.stats.evictions += 1
            LOG.debug("Caché %s lleno, se descarta %s", table, evicted)

    # ---- Invalidación

    def invalidate(self, code: str, table: Optional[str] = None) -> None:
        for t in (table,) if table else TABLES:
            store = self._tables[t]
            self._pending.pop((t, code), None)
            if code in store:
                del store[code]
                LOG.debug("Caché %s invalidado para %s", t, code)

    def clear(self) -> None:
        self._pending.clear()
        for store in self._tables.values():
            store.clear()
        self.stats = CacheStats()

    def __len__(self) -> int:
        return sum(len(s) for s in self._tables.values())
