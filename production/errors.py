# NG-HEADER: Nombre de archivo: errors.py
# NG-HEADER: Ubicación: production/errors.py
# NG-HEADER: Descripción: Taxonomía de errores del motor de carros y sustituciones.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Errores del motor de carros.

- LookupDegraded: falla de consulta de pack/receta/sugerencia (no fatal).
- ValidationRejected: cantidad inválida o que supera el stock (local).
- CartCreationFailed: no se pudo crear el carro (fatal para el intento).
- ItemAddFailed: no se pudo agregar un artículo (se registra, no se lanza).
- TransferFailed: la sustitución de ingrediente falló en el backend.
"""
from __future__ import annotations

from typing import Optional


class ProductionError(Exception):
    def __init__(self, message: str, *, article: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.article = article


class ConfigurationError(ProductionError):
    pass


class BackendError(ProductionError):
    """Error de transporte o respuesta no exitosa del backend."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        article: Optional[str] = None,
    ) -> None:
        super().__init__(message, article=article)
        self.status_code = status_code


class NotFoundError(BackendError):
    pass


class LookupDegraded(ProductionError):
    pass


class ValidationRejected(ProductionError):
    pass


class CartCreationFailed(ProductionError):
    pass


class ItemAddFailed(ProductionError):
    pass


class TransferFailed(ProductionError):
    pass


class AssemblyInProgress(ProductionError):
    pass
