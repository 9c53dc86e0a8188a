# database.py
import logging
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from skillgap.config import build_sqlalchemy_db_url, settings


logger = logging.getLogger(__name__)


def mask_db_url(db_url: str) -> str:
    try:
        return make_url(db_url).render_as_string(hide_password=True)
    except ArgumentError:
        return "<unparseable db url>"


def _engine_options(db_url: str) -> dict:
    options: dict = {"pool_pre_ping": True, "future": True}
    if db_url.startswith("sqlite"):
        # Sessions cross FastAPI's threadpool.
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_recycle"] = 3600
    return options


DATABASE_URL = build_sqlalchemy_db_url(settings)
engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
logger.info("Database engine ready: %s", mask_db_url(DATABASE_URL))

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True, future=True)
Base = declarative_base()


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
