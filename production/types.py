# NG-HEADER: Nombre de archivo: types.py
# NG-HEADER: Ubicación: production/types.py
# NG-HEADER: Descripción: Enumeraciones de estados y tipos del motor de carros.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Tipos y constantes del motor de carros."""
from enum import Enum


class DemandKind(str, Enum):
    SIMPLE = "SIMPLE"
    PACK_COMPONENT = "PACK_COMPONENT"
    SUGGESTION = "SUGGESTION"


class DeficitStatus(str, Enum):
    FALTANTE = "FALTANTE"
    PARCIAL = "PARCIAL"


class AssemblyState(str, Enum):
    IDLE = "IDLE"
    CREATING_CART = "CREATING_CART"
    ADDING_ITEMS = "ADDING_ITEMS"
    DONE = "DONE"
    FAILED_CREATE = "FAILED_CREATE"


class TransferState(str, Enum):
    IDLE = "IDLE"
    ORIGIN_SELECTED = "ORIGIN_SELECTED"
    VALIDATING = "VALIDATING"
    TRANSFERRING = "TRANSFERRING"
    ERROR = "ERROR"


class ValidationLevel(str, Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"
