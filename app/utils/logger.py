"""Logging del ledger: un logger raiz ``ledger`` y un hijo por componente.

Variables de entorno leidas al configurar:

* ``ENV``: ``prod`` reduce el nivel a WARNING y omite el nombre del modulo.
* ``LOG_LEVEL``: fuerza un nivel (``debug``, ``info``, ``warning``, ``error``).
* ``LOG_DIR``: carpeta del archivo rotativo ``ledger.log``.
* ``LOG_TO_FILE``: ``0``/``false`` deja solo la salida por consola.
"""
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

ROOT_LOGGER = "ledger"
LOG_FILENAME = "ledger.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] - %(message)s"
LOG_FORMAT_PROD = "%(asctime)s [%(levelname)s] - %(message)s"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}
_FALSEY = {"0", "false", "no", "off"}


def _get_environment() -> str:
    env = (os.getenv("ENV") or "dev").strip().lower()
    return "prod" if env in {"prod", "production"} else "dev"


def resolve_level(env: str) -> int:
    """Nivel efectivo: ``LOG_LEVEL`` si es valido, si no el del entorno."""
    explicit = (os.getenv("LOG_LEVEL") or "").strip().lower()
    if explicit in _LEVELS:
        return _LEVELS[explicit]
    return logging.WARNING if env == "prod" else logging.INFO


def _build_handlers(formatter: logging.Formatter) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if (os.getenv("LOG_TO_FILE") or "1").strip().lower() not in _FALSEY:
        log_dir = Path(os.getenv("LOG_DIR") or "logs")
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_dir / LOG_FILENAME,
                maxBytes=MAX_LOG_BYTES,
                backupCount=LOG_BACKUPS,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(force: bool = False) -> logging.Logger:
    """Configura el logger raiz una sola vez; ``force`` rehace los handlers."""
    root = logging.getLogger(ROOT_LOGGER)
    if root.handlers and not force:
        return root

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    env = _get_environment()
    formatter = logging.Formatter(LOG_FORMAT_PROD if env == "prod" else LOG_FORMAT)
    for handler in _build_handlers(formatter):
        root.addHandler(handler)
    root.setLevel(resolve_level(env))
    root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Logger ``ledger.<name>``; los hijos heredan handlers y nivel del raiz."""
    configure_logging()
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
