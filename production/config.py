# NG-HEADER: Nombre de archivo: config.py
# NG-HEADER: Ubicación: production/config.py
# NG-HEADER: Descripción: Configuración del motor de carros leída de variables de entorno.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Configuración central del motor de carros."""

from __future__ import annotations

import os
from dataclasses import dataclass
from dotenv import load_dotenv

from .errors import ConfigurationError

# Carga automática de variables definidas en .env
load_dotenv()

CART_TYPES = ("interna", "externa")


def _bool_env(x: str | None, default: bool = False) -> bool:
    if x is None:
        return default
    return str(x).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Parámetros de configuración leídos de variables de entorno."""

    api_base_url: str = os.getenv("PRODUCTION_API_BASE_URL", "http://localhost:3002/api")
    api_timeout: float = float(os.getenv("PRODUCTION_API_TIMEOUT", "30"))  # segundos
    api_token: str | None = os.getenv("PRODUCTION_API_TOKEN") or None
    cache_max_entries: int = int(os.getenv("PRODUCTION_CACHE_MAX_ENTRIES", "512"))
    cart_type: str = os.getenv("PRODUCTION_CART_TYPE", "interna")
    # 1 = agregado de artículos estrictamente secuencial
    assembly_concurrency: int = int(os.getenv("PRODUCTION_ASSEMBLY_CONCURRENCY", "1"))
    log_file: bool = _bool_env(os.getenv("PRODUCTION_LOG_FILE"), False)
    log_dir: str = os.getenv("PRODUCTION_LOG_DIR", "logs")

    def __post_init__(self) -> None:
        self.api_base_url = self.api_base_url.rstrip("/")
        self.cart_type = (self.cart_type or "").strip().lower()
        if self.cart_type not in CART_TYPES:
            raise ConfigurationError(
                f'El tipo de carro debe ser "interna" o "externa" (recibido: {self.cart_type!r})'
            )
        if self.api_timeout <= 0:
            raise ConfigurationError("PRODUCTION_API_TIMEOUT debe ser mayor a 0")
        if self.cache_max_entries < 1:
            raise ConfigurationError("PRODUCTION_CACHE_MAX_ENTRIES debe ser al menos 1")
        if self.assembly_concurrency < 1:
            raise ConfigurationError("PRODUCTION_ASSEMBLY_CONCURRENCY debe ser al menos 1")


settings = Settings()
