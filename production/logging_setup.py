# NG-HEADER: Nombre de archivo: logging_setup.py
# NG-HEADER: Ubicación: production/logging_setup.py
# NG-HEADER: Descripción: Configura logger dedicado para el motor de carros con rotación
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Inicializa un archivo de log separado para el motor de carros.

Se utiliza RotatingFileHandler en `<log_dir>/production.log` con rotación por
tamaño. Activación controlada por variable de entorno `PRODUCTION_LOG_FILE=1`.

Formato JSON compacto para fácil parseo posterior.
"""
from __future__ import annotations
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import Settings, settings as default_settings

LOGGER_NAME = "production"

_STD_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename", "module",
    "exc_info", "exc_text", "stack_info", "lineno", "funcName", "created", "msecs",
    "relativeCreated", "thread", "threadName", "processName", "process", "taskName",
    "message",
}

_INITIALIZED = False


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        base = {
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        # Campos pasados vía extra=...
        meta = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _STD_ATTRS and not k.startswith("_")
        }
        if meta:
            base["extra"] = meta
        return json.dumps(base, ensure_ascii=False, default=str)


def setup_production_logger(cfg: Optional[Settings] = None) -> bool:
    """Agrega el handler rotativo al logger ``production``. Devuelve True si quedó activo."""
    global _INITIALIZED
    if _INITIALIZED:
        return True
    cfg = cfg or default_settings
    if not cfg.log_file:
        return False
    log_dir = Path(cfg.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_dir / "production.log", maxBytes=2_000_000, backupCount=5, encoding="utf-8")
    handler.setFormatter(JsonFormatter())
    lg = logging.getLogger(LOGGER_NAME)
    lg.setLevel(logging.INFO)
    lg.addHandler(handler)
    lg.propagate = True  # mantener propagación a root si ya se captura stdout
    _INITIALIZED = True
    return True
