#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: test_conversion.py
# NG-HEADER: Ubicación: tests/test_conversion.py
# NG-HEADER: Descripción: Tests del factor de conversión y líneas de sugerencia
# NG-HEADER: Lineamientos: Ver AGENTS.md

from __future__ import annotations

import logging

import pytest

from conftest import deficit, recipe
from production.cache import MappingCache
from production.conversion import ConversionEngine
from production.models import Article, PackMapping
from production.resolver import DemandResolver
from production.types import DemandKind


def _engine(backend) -> ConversionEngine:
    cache = MappingCache(backend)
    return ConversionEngine(cache, DemandResolver(cache))


@pytest.mark.asyncio
async def test_symmetric_recipes_give_inverse_factors(backend):
    backend.recipes["X"] = recipe("X", ("Y", 2))
    backend.recipes["Y"] = recipe("Y", ("X", 0.5))
    engine = _engine(backend)

    fxy = await engine.factor("X", "Y")
    fyx = await engine.factor("Y", "X")
    assert fxy == pytest.approx(4)
    assert fxy * fyx == pytest.approx(1)


@pytest.mark.asyncio
async def test_missing_recipe_side_is_identity(backend):
    backend.recipes["X"] = recipe("X", ("Y", 3))
    engine = _engine(backend)
    # Y sin receta: el factor es el consumo de X solo
    assert await engine.factor("X", "Y") == 3
    assert await engine.factor("Y", "X") == pytest.approx(1 / 3)


@pytest.mark.asyncio
async def test_no_recipes_at_all_is_one(backend):
    assert await _engine(backend).factor("A", "B") == 1


@pytest.mark.asyncio
async def test_first_ingredient_fallback_is_logged(backend, caplog):
    backend.recipes["X"] = recipe("X", ("Azúcar", 5), ("Harina", 9))
    engine = _engine(backend)

    with caplog.at_level(logging.WARNING, logger="production.conversion"):
        uc = await engine.unit_consumption("X", "Y")

    assert uc == 5
    rec = next(r for r in caplog.records if r.name == "production.conversion")
    assert rec.article == "X"
    assert rec.expected == "Y"
    assert rec.used == "Azúcar"


@pytest.mark.asyncio
async def test_recipe_lookup_failure_is_identity(backend):
    backend.fail_lookup.add("X")
    assert await _engine(backend).unit_consumption("X", "Y") == 1


@pytest.mark.asyncio
async def test_zero_substitute_consumption_does_not_divide(backend):
    backend.recipes["S"] = recipe("S", ("A", 0))
    backend.recipes["A"] = recipe("A", ("S", 2))
    assert await _engine(backend).factor("A", "S") == 1


@pytest.mark.asyncio
async def test_convert_simple_origin(backend):
    backend.suggestions["A"] = Article("S", descripcion="Sustituto")
    backend.recipes["A"] = recipe("A", ("S", 2))
    backend.recipes["S"] = recipe("S", ("S", 1))

    lines = await _engine(backend).convert([deficit("A", 10)])
    assert len(lines) == 1
    assert lines[0].target_article == "S"
    assert lines[0].quantity == 20
    assert lines[0].kind == DemandKind.SUGGESTION
    assert lines[0].origin_articles == ["A"]
    assert lines[0].description == "Sustituto"


@pytest.mark.asyncio
async def test_pack_origin_uses_component_code(backend):
    backend.packs["PACK1"] = PackMapping(pack="PACK1", component=Article("ING7"), units_per_pack=4)
    backend.suggestions["PACK1"] = Article("S")
    # la receta se busca por el hijo, no por el pack
    backend.recipes["ING7"] = recipe("ING7", ("S", 0.5))
    backend.recipes["PACK1"] = recipe("PACK1", ("S", 100))

    lines = await _engine(backend).convert([deficit("PACK1", 3)])
    assert lines[0].quantity == pytest.approx(12 * 0.5)
    assert lines[0].origin_articles == ["PACK1"]
    assert ("get_recipe", "ING7") in backend.calls
    assert ("get_recipe", "PACK1") not in backend.calls


@pytest.mark.asyncio
async def test_no_suggestion_or_failed_suggestion_emits_nothing(backend):
    backend.fail_lookup.add("B")
    lines = await _engine(backend).convert([deficit("A", 4), deficit("B", 4), deficit("C", 0)])
    assert lines == []
