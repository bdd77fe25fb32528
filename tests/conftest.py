#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: conftest.py
# NG-HEADER: Ubicación: tests/conftest.py
# NG-HEADER: Descripción: Fixtures y backend en memoria compartidos por los tests.
# NG-HEADER: Lineamientos: Ver AGENTS.md
import asyncio
import os
import sys
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

# Asegurar path del proyecto antes de importar módulos internos
project_root = Path(__file__).resolve().parents[1]
if str(project_root) not in sys.path:
    sys.path.append(str(project_root))

# Sin archivo de log durante tests
os.environ.setdefault("PRODUCTION_LOG_FILE", "0")

from production.backend import ProductionBackend  # noqa: E402
from production.config import Settings  # noqa: E402
from production.errors import BackendError  # noqa: E402
from production.models import (  # noqa: E402
    Article,
    Consumer,
    DeficitLine,
    IngredientEntry,
    IngredientStock,
    PackMapping,
    Recipe,
)


def deficit(code: str, owed: float, available: float = 0, descripcion: Optional[str] = None) -> DeficitLine:
    return DeficitLine(
        article=Article(numero=code, descripcion=descripcion),
        quantity_owed=owed,
        quantity_available=available,
    )


def recipe(code: str, *ingredients: Tuple[str, float]) -> Recipe:
    return Recipe(article=code, ingredients=tuple(IngredientEntry(name=n, quantity=q) for n, q in ingredients))


class FakeBackend(ProductionBackend):
    """Backend en memoria: registra cada llamada y permite inyectar fallas."""

    def __init__(self) -> None:
        self.deficits: List[DeficitLine] = []
        self.consumers: List[Consumer] = [Consumer(id=7, name="Ana Pérez")]
        self.packs: Dict[str, PackMapping] = {}
        self.recipes: Dict[str, Recipe] = {}
        self.suggestions: Dict[str, Article] = {}
        self.stock: List[IngredientStock] = []
        self.calls: List[Tuple] = []
        self.next_cart_id = 100
        # inyección de fallas
        self.fail_create: Optional[str] = None
        self.fail_items: Dict[str, str] = {}
        self.fail_transfer: Optional[str] = None
        self.fail_lookup: Set[str] = set()
        # control de concurrencia
        self.yield_on_fetch = False
        self.in_flight = 0
        self.max_in_flight = 0

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name)

    async def _lookup(self, name: str, code: str, source: Dict):
        self.calls.append((name, code))
        if self.yield_on_fetch:
            await asyncio.sleep(0)
        if code in self.fail_lookup:
            raise BackendError(f"timeout consultando {code}", article=code)
        return source.get(code)

    async def fetch_deficits(self, cutoff_date: Optional[date] = None) -> List[DeficitLine]:
        self.calls.append(("fetch_deficits", cutoff_date))
        return list(self.deficits)

    async def list_consumers(self) -> List[Consumer]:
        self.calls.append(("list_consumers",))
        return list(self.consumers)

    async def get_pack_mapping(self, code: str) -> Optional[PackMapping]:
        return await self._lookup("get_pack_mapping", code, self.packs)

    async def get_recipe(self, code: str) -> Optional[Recipe]:
        return await self._lookup("get_recipe", code, self.recipes)

    async def get_suggestion(self, code: str) -> Optional[Article]:
        return await self._lookup("get_suggestion", code, self.suggestions)

    async def set_suggestion(self, code: str, substitute_code: str) -> None:
        self.calls.append(("set_suggestion", code, substitute_code))
        self.suggestions[code] = Article(numero=substitute_code)

    async def delete_suggestion(self, code: str) -> None:
        self.calls.append(("delete_suggestion", code))
        self.suggestions.pop(code, None)

    async def list_ingredients_with_stock(self, cart_id: int) -> List[IngredientStock]:
        self.calls.append(("list_ingredients_with_stock", cart_id))
        # copias: el controlador muta su snapshot local
        return [IngredientStock(s.ingredient_id, s.name, s.unit, s.stock_available) for s in self.stock]

    async def transfer_ingredient(self, *, origin_id, target_id, quantity, cart_id, consumer_id) -> str:
        self.calls.append(("transfer_ingredient", origin_id, target_id, quantity, cart_id, consumer_id))
        if self.fail_transfer:
            raise BackendError(self.fail_transfer)
        return ""

    async def create_cart(self, consumer_id: int, cart_type: str = "interna") -> int:
        self.calls.append(("create_cart", consumer_id, cart_type))
        if self.yield_on_fetch:
            await asyncio.sleep(0)
        if self.fail_create:
            raise BackendError(self.fail_create, status_code=500)
        self.next_cart_id += 1
        return self.next_cart_id

    async def add_cart_item(self, cart_id, *, article_code, description, quantity, consumer_id) -> None:
        self.calls.append(("add_cart_item", cart_id, article_code, quantity, consumer_id))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if article_code in self.fail_items:
                raise BackendError(self.fail_items[article_code], status_code=400, article=article_code)
        finally:
            self.in_flight -= 1


@pytest.fixture
def cfg() -> Settings:
    return Settings(
        api_base_url="http://backend.test/api",
        api_timeout=5,
        api_token=None,
        cache_max_entries=64,
        cart_type="interna",
        assembly_concurrency=1,
        log_file=False,
        log_dir="logs",
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()
