from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.config import settings


# SQLite needs this when the session is used from FastAPI's threadpool
connect_args = (
    {"check_same_thread": False}
    if settings.DATABASE_URL.startswith("sqlite")
    else {}
)

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Commit everything written inside the block, or nothing.

    Any exception (validation error or database failure) rolls back
    every pending insert/update/delete before it propagates.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def safe_database_url(url: str | None = None) -> str:
    """Database URL for logs, with any password masked."""
    return make_url(url or settings.DATABASE_URL).render_as_string(hide_password=True)
