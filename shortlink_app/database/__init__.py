from .connection import Base, SessionLocal, engine, get_db, init_db, dispose_engine

__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "init_db",
    "dispose_engine",
]
