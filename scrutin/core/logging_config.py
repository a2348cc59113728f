"""Configuration centralisée du logging applicatif et d'audit."""
from __future__ import annotations

import logging
import sys
import tempfile
from pathlib import Path
from typing import Optional

from ..config import AUDIT_LOG_FILE

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers trop bavards au niveau INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access")


class ColoredFormatter(logging.Formatter):
    """Colore les avertissements et erreurs sur la console."""

    COLORS = {
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = self.COLORS.get(record.levelno)
        return f"{color}{message}\033[0m" if color else message


def _writable_path(raw_path: str) -> Path:
    """Chemin du fichier de logs, replié dans le répertoire temporaire si besoin."""
    path = Path(raw_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return path
    except OSError:
        return Path(tempfile.gettempdir()) / path.name


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Installe les handlers console et fichier sur le logger racine (une seule fois)."""
    root_logger = logging.getLogger()
    if any(getattr(handler, "_scrutin", False) for handler in root_logger.handlers):
        return
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    console = logging.StreamHandler()
    formatter_class = ColoredFormatter if sys.stderr.isatty() else logging.Formatter
    console.setFormatter(formatter_class(LOG_FORMAT, DATE_FORMAT))
    handlers = [console]

    if log_file:
        file_handler = logging.FileHandler(_writable_path(log_file), encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handlers.append(file_handler)

    for handler in handlers:
        handler._scrutin = True
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class AuditLogger:
    """
    Journal d'audit des opérations sensibles : écritures de participation
    (forcées ou non), blocages de validation, redressements et refus d'accès.

    Une ligne par événement, au format ``EVENT cle=valeur ...``.
    """

    def __init__(self, raw_log_file: str = AUDIT_LOG_FILE) -> None:
        self._logger = logging.getLogger("scrutin.audit")
        self._logger.setLevel(logging.INFO)
        self._logger.propagate = False
        if not self._logger.handlers:
            self._logger.addHandler(self._open_handler(raw_log_file))

    @staticmethod
    def _open_handler(raw_log_file: str) -> logging.Handler:
        path = _writable_path(raw_log_file)
        try:
            handler: logging.Handler = logging.FileHandler(path, encoding="utf-8")
        except OSError as exc:
            handler = logging.StreamHandler()
            logging.getLogger(__name__).warning(
                "Fichier d'audit %s inaccessible (%s), audit sur la sortie d'erreur", path, exc
            )
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        return handler

    def _emit(self, level: int, event: str, **fields) -> None:
        details = " ".join(f"{key}={value}" for key, value in fields.items())
        self._logger.log(level, "%s %s", event, details)

    def log_participation_update(self, user, unit: str, forced: bool, errors: int, warnings: int) -> None:
        self._emit(
            logging.INFO, "PARTICIPATION_UPDATE",
            user=user, unit=unit, forced=forced, errors=errors, warnings=warnings,
        )

    def log_validation_blocked(self, user, unit: str, errors: int, warnings: int) -> None:
        self._emit(logging.INFO, "VALIDATION_BLOCKED", user=user, unit=unit, errors=errors, warnings=warnings)

    def log_correction(self, user, kind: str, action: str, key) -> None:
        self._emit(logging.INFO, "CORRECTION", user=user, kind=kind, action=action, key=key)

    def log_access_denied(self, user, unit: str) -> None:
        self._emit(logging.WARNING, "ACCESS_DENIED", user=user, unit=unit)


audit_logger = AuditLogger()

__all__ = ["setup_logging", "get_logger", "audit_logger", "AuditLogger"]
