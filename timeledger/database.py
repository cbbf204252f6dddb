"""Engine, session factory and declarative base.

The engine is built once from settings; request handlers receive a scoped
``Session`` through the ``get_db`` dependency, which tests override.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from timeledger.config import settings

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a session for one unit of work; always closed on exit."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
