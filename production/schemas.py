# NG-HEADER: Nombre de archivo: schemas.py
# NG-HEADER: Ubicación: production/schemas.py
# NG-HEADER: Descripción: Esquemas Pydantic de las respuestas y payloads del backend de producción.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Esquemas de intercambio con el backend de producción.

Los nombres de campo respetan el contrato REST existente (español, snake/camel
según el endpoint). Cada esquema sabe convertirse al modelo interno.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .models import (
    Article,
    Consumer,
    DeficitLine,
    IngredientEntry,
    IngredientStock,
    Recipe,
)


def _as_code(v):
    # Postgres puede devolver códigos numéricos
    if v is None:
        return None
    v = str(v).strip()
    return v or None


# --- Respuestas ---

class OrderLinePayload(BaseModel):
    """Fila de /produccion/pedidos-articulos."""
    articulo_numero: str
    codigo_barras: Optional[str] = None
    descripcion: Optional[str] = None
    nombre: Optional[str] = None
    pedido_total: float = 0
    stock_disponible: float = 0
    es_pack: bool = False
    pack_hijo_codigo: Optional[str] = None
    pack_unidades: Optional[float] = None

    @field_validator("articulo_numero", "codigo_barras", "pack_hijo_codigo", mode="before")
    @classmethod
    def _codes(cls, v):
        return _as_code(v)

    @field_validator("pedido_total", "stock_disponible", mode="before")
    @classmethod
    def _numbers(cls, v):
        return 0 if v in (None, "") else v

    def to_article(self) -> Article:
        return Article(
            numero=self.articulo_numero,
            codigo_barras=self.codigo_barras,
            descripcion=self.descripcion or self.nombre,
        )

    def to_deficit(self) -> DeficitLine:
        return DeficitLine(
            article=self.to_article(),
            quantity_owed=self.pedido_total,
            quantity_available=self.stock_disponible,
        )


class OrderLinesResponse(BaseModel):
    success: bool = True
    data: List[OrderLinePayload] = Field(default_factory=list)


class ConsumerPayload(BaseModel):
    id: int
    nombre_completo: str

    def to_consumer(self) -> Consumer:
        return Consumer(id=self.id, name=self.nombre_completo)


class RecipeIngredientPayload(BaseModel):
    nombre_ingrediente: str
    cantidad: float
    unidad_medida: Optional[str] = None


class RecipePayload(BaseModel):
    articulo_numero: Optional[str] = None
    ingredientes: List[RecipeIngredientPayload] = Field(default_factory=list)

    @field_validator("articulo_numero", mode="before")
    @classmethod
    def _code(cls, v):
        return _as_code(v)

    def to_recipe(self, code: str) -> Recipe:
        return Recipe(
            article=self.articulo_numero or code,
            ingredients=tuple(
                IngredientEntry(name=i.nombre_ingrediente, quantity=i.cantidad, unit=i.unidad_medida)
                for i in self.ingredientes
            ),
        )


class SuggestedArticlePayload(BaseModel):
    articulo_numero: str
    nombre: Optional[str] = None
    codigo_barras: Optional[str] = None

    @field_validator("articulo_numero", "codigo_barras", mode="before")
    @classmethod
    def _codes(cls, v):
        return _as_code(v)


class SuggestionPayload(BaseModel):
    articulo_numero: Optional[str] = None
    tiene_sugerencia: bool = False
    sugerencia: Optional[SuggestedArticlePayload] = None

    def to_article(self) -> Optional[Article]:
        if not self.tiene_sugerencia or self.sugerencia is None:
            return None
        s = self.sugerencia
        return Article(numero=s.articulo_numero, codigo_barras=s.codigo_barras, descripcion=s.nombre)


class IngredientStockPayload(BaseModel):
    id: int
    nombre: str
    unidad_medida: Optional[str] = None
    stock_actual: Optional[float] = 0

    def to_stock(self) -> IngredientStock:
        return IngredientStock(
            ingredient_id=self.id,
            name=self.nombre,
            unit=self.unidad_medida,
            stock_available=float(self.stock_actual or 0),
        )


class CartCreatedPayload(BaseModel):
    id: int


class TransferResponsePayload(BaseModel):
    success: bool = True
    mensaje: Optional[str] = None


# --- Requests ---

class CreateCartRequest(BaseModel):
    usuarioId: int
    enAuditoria: bool = False
    tipoCarro: str = "interna"


class AddCartItemRequest(BaseModel):
    articulo_numero: str = Field(..., min_length=1)
    descripcion: str
    cantidad: float = Field(..., gt=0)
    usuarioId: int


class SuggestionUpdateRequest(BaseModel):
    articulo_sugerido_numero: str = Field(..., min_length=1)


class TransferRequest(BaseModel):
    """Payload de /produccion/sustituir-ingrediente."""
    ingredienteOrigenId: int
    ingredienteDestinoId: int
    cantidad: float = Field(..., gt=0)
    carroId: int
    usuarioId: int
