"""
Gestión de engine y sesiones de base de datos (SQLAlchemy, modo síncrono).

El motor de transferencia es secuencial por invocación, así que se usa la
API síncrona; las rutas FastAPI que lo invocan son `def` y corren en el
threadpool.
"""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


# Base para modelos de SQLAlchemy
Base = declarative_base()


def _create_engine_args(database_url: str, echo: bool) -> dict:
    """
    Construye los argumentos del engine segun el tipo de base de datos.
    PostgreSQL usa pool de conexiones; SQLite en memoria necesita una sola
    conexion compartida entre threads.
    """
    args: dict = {"echo": echo, "future": True}

    if database_url.startswith("postgresql"):
        args.update({
            "pool_size": 5,
            "max_overflow": 10,
            "pool_pre_ping": True,  # Verifica conexion antes de usar
        })
    elif database_url.startswith("sqlite") and (":memory:" in database_url or database_url.rstrip("/") == "sqlite:"):
        args.update({
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        })

    return args


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Crea el engine para la URL dada."""
    return create_engine(database_url, **_create_engine_args(database_url, echo))


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory sin autoflush; el caller controla commits via `session_scope`."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """
    Sesión transaccional: commit al salir, rollback si hay excepción.

    Yields:
        Session: Sesión de base de datos
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine) -> None:
    """Inicializa la base de datos creando todas las tablas."""
    from record_sync.infrastructure.database import models  # noqa: F401  (registra modelos)

    Base.metadata.create_all(engine)
