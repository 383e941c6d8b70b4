"""Database session, metadata and unit-of-work helpers."""

from .session import Base, dispose_engine, get_engine, get_session, get_sessionmaker, init_db

__all__ = [
    "Base",
    "SqlAlchemyUnitOfWork",
    "UnitOfWork",
    "dispose_engine",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_db",
]


def __getattr__(name: str):
    # Loaded lazily: unit_of_work imports the repositories, which import the
    # models, which import ``db.session`` -- an eager import here is circular.
    if name in ("SqlAlchemyUnitOfWork", "UnitOfWork"):
        from . import unit_of_work

        return getattr(unit_of_work, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
