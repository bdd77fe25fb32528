# NG-HEADER: Nombre de archivo: models.py
# NG-HEADER: Ubicación: production/models.py
# NG-HEADER: Descripción: Dataclasses del modelo de artículos, faltantes y resultados.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Modelo de datos del motor de carros.

Las entidades que llegan del backend (artículos, packs, recetas, stock) son
inmutables durante una sesión; las líneas resueltas y la selección viven
sólo en memoria y se reconstruyen en cada refresco.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .types import DeficitStatus, DemandKind, ValidationLevel


# --- Artículos y relaciones ---

@dataclass(frozen=True)
class Article:
    numero: str
    codigo_barras: Optional[str] = None
    descripcion: Optional[str] = None

    def matches(self, code: str) -> bool:
        """True si ``code`` coincide con el número o con el código de barras."""
        return code == self.numero or (self.codigo_barras is not None and code == self.codigo_barras)

    @property
    def label(self) -> str:
        return self.descripcion or self.numero


@dataclass(frozen=True)
class PackMapping:
    pack: str
    component: Article
    units_per_pack: float

    def __post_init__(self) -> None:
        if not self.units_per_pack > 0:
            raise ValueError(f"units_per_pack debe ser > 0 (pack {self.pack}: {self.units_per_pack})")


@dataclass(frozen=True)
class DeficitLine:
    article: Article
    quantity_owed: float
    quantity_available: float

    @property
    def deficit(self) -> float:
        return max(0.0, self.quantity_owed - self.quantity_available)

    @property
    def status(self) -> DeficitStatus:
        if self.quantity_available > 0 and self.deficit < self.quantity_owed:
            return DeficitStatus.PARCIAL
        return DeficitStatus.FALTANTE


@dataclass(frozen=True)
class IngredientEntry:
    name: str
    quantity: float
    unit: Optional[str] = None


@dataclass(frozen=True)
class Recipe:
    article: str
    ingredients: Tuple[IngredientEntry, ...] = ()


@dataclass(frozen=True)
class Consumer:
    id: int
    name: str


# --- Resolución y selección ---

@dataclass
class ResolvedDemandLine:
    target_article: str
    quantity: float
    kind: DemandKind
    origin_articles: List[str]
    description: Optional[str] = None
    codigo_barras: Optional[str] = None
    parent_article: Optional[str] = None  # sólo PACK_COMPONENT
    units_per_pack: Optional[float] = None


@dataclass
class SelectionEntry:
    target_article: str
    quantity: float
    selected: bool = True
    description: Optional[str] = None


# --- Sustitución de ingredientes ---

@dataclass
class IngredientStock:
    ingredient_id: int
    name: str
    unit: Optional[str]
    stock_available: float


@dataclass
class ValidationResult:
    level: ValidationLevel
    message: Optional[str] = None
    remaining_preview: float = 0.0
    complete: bool = False

    @property
    def ok(self) -> bool:
        return self.level != ValidationLevel.ERROR


# --- Resultados hacia la capa de presentación ---

@dataclass
class AssemblyResult:
    cart_id: int
    added_count: int
    total: int
    item_errors: Dict[str, str] = field(default_factory=dict)

    @property
    def message(self) -> str:
        if self.item_errors:
            return f"Carro creado con {self.added_count} artículos. {len(self.item_errors)} errores."
        return f"Carro creado exitosamente con {self.added_count} artículos"


@dataclass
class TransferResult:
    success: bool
    message: str
    updated_stock: float
    remaining_deficit: float
