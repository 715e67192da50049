# database.py
import logging
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from skillhire.config import build_sqlalchemy_db_url, settings


logger = logging.getLogger(__name__)


def _engine_options(db_url: str) -> dict[str, Any]:
    if db_url.startswith("sqlite"):
        # Background quiz assembly uses its own session on another thread.
        return {"connect_args": {"check_same_thread": False}}
    # MySQL drops idle connections after wait_timeout.
    return {"pool_recycle": 3600, "pool_size": 5, "max_overflow": 10}


def mask_db_url(db_url: str) -> str:
    try:
        return str(make_url(db_url).set(password="***"))
    except Exception:
        return db_url


_db_url = build_sqlalchemy_db_url(settings)
engine = create_engine(_db_url, pool_pre_ping=True, future=True, **_engine_options(_db_url))
logger.info("SQLAlchemy ORM db_url=%s", mask_db_url(_db_url))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
