# NG-HEADER: Nombre de archivo: __init__.py
# NG-HEADER: Ubicación: production/__init__.py
# NG-HEADER: Descripción: Motor de armado de carros y sustitución de ingredientes.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Motor de configuración de carros de producción.

Expone la sesión de configuración (resolución de faltantes, selección y
armado de carros) y el controlador de sustitución de ingredientes.
"""
from .session import CartConfigurationSession
from .substitution import SubstitutionTransferController, TransferTarget

__all__ = [
    "CartConfigurationSession",
    "SubstitutionTransferController",
    "TransferTarget",
]
