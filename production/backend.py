# NG-HEADER: Nombre de archivo: backend.py
# NG-HEADER: Ubicación: production/backend.py
# NG-HEADER: Descripción: Contrato e implementación HTTP del backend de producción.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Acceso al backend de producción.

`ProductionBackend` define el contrato que consume el motor; la implementación
`HttpProductionBackend` habla con la API REST existente vía httpx. Las
consultas de pack, receta y sugerencia devuelven ``None`` cuando el backend
responde 404; cualquier otra falla se propaga como ``BackendError`` con el
mensaje del backend tal cual.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional, Type, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from .config import Settings, settings as default_settings
from .errors import BackendError, NotFoundError
from .models import Article, Consumer, DeficitLine, IngredientStock, PackMapping, Recipe
from .schemas import (
    AddCartItemRequest,
    CartCreatedPayload,
    ConsumerPayload,
    CreateCartRequest,
    IngredientStockPayload,
    OrderLinePayload,
    OrderLinesResponse,
    RecipePayload,
    SuggestionPayload,
    SuggestionUpdateRequest,
    TransferRequest,
    TransferResponsePayload,
)

LOG = logging.getLogger("production.backend")

M = TypeVar("M", bound=BaseModel)

DEFAULT_COMPONENT_NAME = "Artículo hijo"


class ProductionBackend(ABC):
    """Contrato request/response con el backend de producción."""

    @abstractmethod
    async def fetch_deficits(self, cutoff_date: Optional[date] = None) -> List[DeficitLine]:  # pragma: no cover - interfaz
        """Líneas de pedidos con cantidad pedida y stock disponible."""

    @abstractmethod
    async def list_consumers(self) -> List[Consumer]:  # pragma: no cover - interfaz
        """Usuarios habilitados para producir."""

    @abstractmethod
    async def get_pack_mapping(self, code: str) -> Optional[PackMapping]:  # pragma: no cover - interfaz
        """Mapping pack→componente, o None si el artículo no es pack."""

    @abstractmethod
    async def get_recipe(self, code: str) -> Optional[Recipe]:  # pragma: no cover - interfaz
        """Receta del artículo, o None si no tiene."""

    @abstractmethod
    async def get_suggestion(self, code: str) -> Optional[Article]:  # pragma: no cover - interfaz
        """Artículo sugerido como sustituto, o None."""

    @abstractmethod
    async def set_suggestion(self, code: str, substitute_code: str) -> None:  # pragma: no cover - interfaz
        ...

    @abstractmethod
    async def delete_suggestion(self, code: str) -> None:  # pragma: no cover - interfaz
        ...

    @abstractmethod
    async def list_ingredients_with_stock(self, cart_id: int) -> List[IngredientStock]:  # pragma: no cover - interfaz
        ...

    @abstractmethod
    async def transfer_ingredient(
        self,
        *,
        origin_id: int,
        target_id: int,
        quantity: float,
        cart_id: int,
        consumer_id: int,
    ) -> str:  # pragma: no cover - interfaz
        """Registra egreso del origen e ingreso al destino. Devuelve el mensaje del backend."""

    @abstractmethod
    async def create_cart(self, consumer_id: int, cart_type: str = "interna") -> int:  # pragma: no cover - interfaz
        """Crea el carro y devuelve su id."""

    @abstractmethod
    async def add_cart_item(
        self,
        cart_id: int,
        *,
        article_code: str,
        description: str,
        quantity: float,
        consumer_id: int,
    ) -> None:  # pragma: no cover - interfaz
        ...


class HttpProductionBackend(ProductionBackend):
    """Implementación sobre la API REST (`/api/produccion/...`)."""

    def __init__(self, cfg: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None) -> None:
        self.cfg = cfg or default_settings
        self._owns_client = client is None
        if client is None:
            headers = {
                "Content-Type": "application/json",
                "User-Agent": "ProduccionCarros/1.0",
            }
            if self.cfg.api_token:
                headers["Authorization"] = f"Bearer {self.cfg.api_token}"
            client = httpx.AsyncClient(base_url=self.cfg.api_base_url, timeout=self.cfg.api_timeout, headers=headers)
        self._client = client

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpProductionBackend":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ---- Helpers

    @staticmethod
    def _error_text(resp: httpx.Response, default: str) -> str:
        try:
            body = resp.json()
        except ValueError:
            return default
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return default

    async def _request(self, method: str, path: str, *, article: Optional[str] = None, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise BackendError(f"Error de conexión con el backend: {e}", article=article) from e
        if resp.status_code == 404:
            raise NotFoundError(self._error_text(resp, "Recurso no encontrado"), status_code=404, article=article)
        if resp.is_error:
            raise BackendError(
                self._error_text(resp, f"Error HTTP: {resp.status_code}"),
                status_code=resp.status_code,
                article=article,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise BackendError("El backend devolvió una respuesta que no es JSON", status_code=resp.status_code, article=article) from e

    @staticmethod
    def _parse(schema: Type[M], data: Any, *, article: Optional[str] = None) -> M:
        try:
            return schema.model_validate(data)
        except ValidationError as e:
            raise BackendError(
                f"Respuesta inválida del backend para {schema.__name__} ({e.error_count()} errores)",
                article=article,
            ) from e

    async def _order_lines(self, params: Dict[str, Any], *, article: Optional[str] = None) -> List[OrderLinePayload]:
        data = await self._request("GET", "/produccion/pedidos-articulos", params=params, article=article)
        parsed = self._parse(OrderLinesResponse, data, article=article)
        if not parsed.success:
            return []
        return parsed.data

    @staticmethod
    def _match_child(rows: List[OrderLinePayload], child_code: str) -> Optional[OrderLinePayload]:
        # El hijo puede venir referenciado por código de barras o por número
        return next((r for r in rows if r.codigo_barras == child_code or r.articulo_numero == child_code), None)

    # ---- API

    async def fetch_deficits(self, cutoff_date: Optional[date] = None) -> List[DeficitLine]:
        params: Dict[str, Any] = {}
        if cutoff_date is not None:
            params["fecha"] = cutoff_date.isoformat()
        rows = await self._order_lines(params)
        return [r.to_deficit() for r in rows]

    async def list_consumers(self) -> List[Consumer]:
        data = await self._request("GET", "/usuarios/con-permiso/Produccion")
        if not isinstance(data, list):
            raise BackendError("Se esperaba una lista de usuarios")
        return [self._parse(ConsumerPayload, row).to_consumer() for row in data]

    async def get_pack_mapping(self, code: str) -> Optional[PackMapping]:
        rows = await self._order_lines({"include_pack": "true", "q": code}, article=code)
        row = next((r for r in rows if r.articulo_numero == code), None)
        if row is None or not row.es_pack or not row.pack_hijo_codigo:
            LOG.debug("No hay pack configurado para %s", code)
            return None

        child_code = row.pack_hijo_codigo
        component = Article(numero=child_code, codigo_barras=child_code, descripcion=DEFAULT_COMPONENT_NAME)
        try:
            child_rows = await self._order_lines({"include_pack": "true", "q": child_code}, article=child_code)
        except BackendError as e:
            LOG.warning("No se pudo obtener info del hijo %s del pack %s: %s", child_code, code, e.message)
            child_rows = []
        child = self._match_child(child_rows, child_code)
        if child is None:
            # la búsqueda por q no siempre encuentra al hijo: se prueba con el listado completo
            LOG.info("Hijo %s no encontrado por búsqueda, probando listado general", child_code)
            try:
                child = self._match_child(await self._order_lines({}, article=child_code), child_code)
            except BackendError as e:
                LOG.warning("Falló la búsqueda general del hijo %s: %s", child_code, e.message)
        if child is not None:
            component = Article(
                numero=child.articulo_numero or child_code,
                codigo_barras=child.codigo_barras or child_code,
                descripcion=child.descripcion or child.nombre or DEFAULT_COMPONENT_NAME,
            )
        else:
            LOG.warning("Sin descripción para el hijo %s del pack %s, usando fallback", child_code, code)

        units = row.pack_unidades or 1
        if units <= 0:
            LOG.warning("pack_unidades inválido (%s) para %s; se usa 1", units, code)
            units = 1
        return PackMapping(pack=code, component=component, units_per_pack=float(units))

    async def get_recipe(self, code: str) -> Optional[Recipe]:
        try:
            data = await self._request("GET", f"/produccion/recetas/{quote(code, safe='')}", article=code)
        except NotFoundError:
            return None
        return self._parse(RecipePayload, data, article=code).to_recipe(code)

    async def get_suggestion(self, code: str) -> Optional[Article]:
        try:
            data = await self._request("GET", f"/produccion/recetas/{quote(code, safe='')}/sugerencia", article=code)
        except NotFoundError:
            return None
        return self._parse(SuggestionPayload, data, article=code).to_article()

    async def set_suggestion(self, code: str, substitute_code: str) -> None:
        body = SuggestionUpdateRequest(articulo_sugerido_numero=substitute_code)
        await self._request(
            "PUT",
            f"/produccion/recetas/{quote(code, safe='')}/sugerencia",
            json=body.model_dump(),
            article=code,
        )

    async def delete_suggestion(self, code: str) -> None:
        await self._request("DELETE", f"/produccion/recetas/{quote(code, safe='')}/sugerencia", article=code)

    async def list_ingredients_with_stock(self, cart_id: int) -> List[IngredientStock]:
        data = await self._request("GET", "/produccion/ingredientes-con-stock", params={"carroId": cart_id})
        if not isinstance(data, list):
            raise BackendError("Se esperaba una lista de ingredientes")
        return [self._parse(IngredientStockPayload, row).to_stock() for row in data]

    async def transfer_ingredient(
        self,
        *,
        origin_id: int,
        target_id: int,
        quantity: float,
        cart_id: int,
        consumer_id: int,
    ) -> str:
        body = TransferRequest(
            ingredienteOrigenId=origin_id,
            ingredienteDestinoId=target_id,
            cantidad=quantity,
            carroId=cart_id,
            usuarioId=consumer_id,
        )
        data = await self._request("POST", "/produccion/sustituir-ingrediente", json=body.model_dump())
        parsed = self._parse(TransferResponsePayload, data)
        if not parsed.success:
            raise BackendError(parsed.mensaje or "Error al realizar la sustitución")
        return parsed.mensaje or ""

    async def create_cart(self, consumer_id: int, cart_type: str = "interna") -> int:
        body = CreateCartRequest(usuarioId=consumer_id, enAuditoria=False, tipoCarro=cart_type)
        data = await self._request("POST", "/produccion/carro", json=body.model_dump())
        return self._parse(CartCreatedPayload, data).id

    async def add_cart_item(
        self,
        cart_id: int,
        *,
        article_code: str,
        description: str,
        quantity: float,
        consumer_id: int,
    ) -> None:
        try:
            body = AddCartItemRequest(
                articulo_numero=article_code,
                descripcion=description or article_code,
                cantidad=quantity,
                usuarioId=consumer_id,
            )
        except ValidationError as e:
            raise BackendError(f"Datos inválidos para agregar {article_code}: {e.error_count()} errores", article=article_code) from e
        await self._request("POST", f"/produccion/carro/{cart_id}/articulo", json=body.model_dump(), article=article_code)
