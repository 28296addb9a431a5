from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from modulyn.core.config import get_settings

settings = get_settings()


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    # In-memory SQLite must share one connection or every session sees an empty database.
    if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(settings.SQLALCHEMY_DATABASE_URI, **_engine_kwargs(settings.SQLALCHEMY_DATABASE_URI))

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


class Base(DeclarativeBase):
    pass


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
