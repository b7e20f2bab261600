from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from quizquest.config import DATABASE_URL
from quizquest import models  # noqa: F401  registers tables on SQLModel.metadata

_engine_kwargs = {}
if DATABASE_URL.startswith("sqlite"):
    _engine_kwargs["connect_args"] = {"check_same_thread": False}
    # A bare "sqlite://" is in-memory; share one connection or every session sees an empty DB
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        _engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, echo=False, **_engine_kwargs)


def init_db() -> None:
    """Create all tables if they don't exist."""
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
