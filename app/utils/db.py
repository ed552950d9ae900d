import os
from typing import Optional
from urllib.parse import quote_plus

from dotenv import load_dotenv
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import create_engine

from app.utils.logger import get_logger
from app.utils.tenant import register_tenant_listeners

load_dotenv()

logger = get_logger("Database")

_engine: Optional[Engine] = None


def _require_env(var_name: str) -> str:
    """Obtiene una variable de entorno obligatoria o lanza error."""
    value = os.getenv(var_name)
    if not value:
        raise RuntimeError(f"Variable de entorno requerida no encontrada: {var_name}")
    return value


def build_database_url() -> str:
    """URL de conexion: ``DATABASE_URL`` o las variables ``DB_*`` (MySQL)."""
    explicit = (os.getenv("DATABASE_URL") or "").strip()
    if explicit:
        return explicit

    db_user = quote_plus(_require_env("DB_USER"))
    db_password = quote_plus(_require_env("DB_PASSWORD"))
    db_host = _require_env("DB_HOST")
    db_port = os.getenv("DB_PORT", "3306")
    db_name = _require_env("DB_NAME")
    return f"mysql+pymysql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def prepare_engine(engine: Engine) -> Engine:
    """Registra los listeners necesarios sobre un engine ya creado."""
    if engine.dialect.name == "sqlite" and not event.contains(
        engine, "connect", _enable_sqlite_foreign_keys
    ):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    register_tenant_listeners()
    return engine


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        url = build_database_url()
        if url.startswith("sqlite"):
            _engine = create_engine(url)
        else:
            _engine = create_engine(
                url,
                pool_pre_ping=True,
                pool_size=20,
                max_overflow=30,
                pool_recycle=1800,
            )
        prepare_engine(_engine)
        logger.info("Engine de base de datos creado (%s).", _engine.dialect.name)
    return _engine

