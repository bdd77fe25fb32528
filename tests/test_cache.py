#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: test_cache.py
# NG-HEADER: Ubicación: tests/test_cache.py
# NG-HEADER: Descripción: Tests del caché de packs, recetas y sugerencias
# NG-HEADER: Lineamientos: Ver AGENTS.md

from __future__ import annotations

import asyncio

import pytest

from production.cache import PACK, RECIPE, SUGGESTION, MappingCache
from production.errors import LookupDegraded
from production.models import Article, PackMapping


@pytest.mark.asyncio
async def test_negative_lookup_is_cached(backend):
    cache = MappingCache(backend)
    assert await cache.pack_mapping("SIMPLE1") is None
    assert await cache.pack_mapping("SIMPLE1") is None
    assert backend.count("get_pack_mapping") == 1
    assert cache.stats.hits == 1
    assert cache.stats.misses == 1


@pytest.mark.asyncio
async def test_concurrent_lookups_share_one_fetch(backend):
    backend.yield_on_fetch = True
    backend.packs["PACK1"] = PackMapping(pack="PACK1", component=Article("ING7"), units_per_pack=4)
    cache = MappingCache(backend)

    results = await asyncio.gather(*(cache.pack_mapping("PACK1") for _ in range(5)))

    assert backend.count("get_pack_mapping") == 1
    assert all(r is results[0] for r in results)
    assert cache.stats.shared == 4


@pytest.mark.asyncio
async def test_failure_is_degraded_and_not_cached(backend):
    backend.fail_lookup.add("X1")
    cache = MappingCache(backend)

    with pytest.raises(LookupDegraded) as exc:
        await cache.recipe("X1")
    assert exc.value.article == "X1"

    backend.fail_lookup.clear()
    assert await cache.recipe("X1") is None
    assert backend.count("get_recipe") == 2


@pytest.mark.asyncio
async def test_concurrent_waiters_see_the_same_failure(backend):
    backend.yield_on_fetch = True
    backend.fail_lookup.add("X2")
    cache = MappingCache(backend)

    results = await asyncio.gather(
        cache.suggestion("X2"),
        cache.suggestion("X2"),
        return_exceptions=True,
    )

    assert all(isinstance(r, LookupDegraded) for r in results)
    assert backend.count("get_suggestion") == 1


@pytest.mark.asyncio
async def test_clear_during_fetch_does_not_store_stale_value(backend):
    backend.yield_on_fetch = True
    backend.packs["P"] = PackMapping(pack="P", component=Article("C"), units_per_pack=2)
    cache = MappingCache(backend)

    task = asyncio.create_task(cache.pack_mapping("P"))
    await asyncio.sleep(0)
    cache.clear()
    result = await task

    # quien pidió el dato lo recibe, pero no queda en el caché nuevo
    assert result.units_per_pack == 2
    assert len(cache) == 0
    await cache.pack_mapping("P")
    assert backend.count("get_pack_mapping") == 2


@pytest.mark.asyncio
async def test_invalidate_during_fetch_does_not_store_stale_value(backend):
    backend.yield_on_fetch = True
    backend.suggestions["A"] = Article("S")
    cache = MappingCache(backend)

    task = asyncio.create_task(cache.suggestion("A"))
    await asyncio.sleep(0)
    cache.invalidate("A", SUGGESTION)
    assert (await task).numero == "S"
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_tables_are_independent(backend):
    cache = MappingCache(backend)
    await cache.pack_mapping("A")
    await cache.recipe("A")
    await cache.suggestion("A")
    assert len(cache) == 3

    cache.invalidate("A", SUGGESTION)
    assert len(cache) == 2
    await cache.suggestion("A")
    assert backend.count("get_suggestion") == 2
    assert backend.count("get_recipe") == 1


@pytest.mark.asyncio
async def test_invalidate_all_tables_and_clear(backend):
    cache = MappingCache(backend)
    for code in ("A", "B"):
        await cache.pack_mapping(code)
        await cache.recipe(code)

    cache.invalidate("A")
    assert len(cache) == 2

    cache.clear()
    assert len(cache) == 0
    assert cache.stats.hits == 0


@pytest.mark.asyncio
async def test_lru_bound_per_table(backend):
    cache = MappingCache(backend, max_entries=2)
    await cache.pack_mapping("A")
    await cache.pack_mapping("B")
    await cache.pack_mapping("A")  # A pasa a ser el más reciente
    await cache.pack_mapping("C")  # descarta B

    assert cache.stats.evictions == 1
    await cache.pack_mapping("A")
    assert backend.count("get_pack_mapping") == 3
    await cache.pack_mapping("B")
    assert backend.count("get_pack_mapping") == 4


@pytest.mark.asyncio
async def test_get_or_fetch_generic(backend):
    cache = MappingCache(backend)
    calls = []

    async def fetch():
        calls.append(1)
        return 42

    assert await cache.get_or_fetch(RECIPE, "Z", fetch) == 42
    assert await cache.get_or_fetch(RECIPE, "Z", fetch) == 42
    assert calls == [1]
    assert await cache.get_or_fetch(PACK, "Z", fetch) == 42
    assert calls == [1, 1]
