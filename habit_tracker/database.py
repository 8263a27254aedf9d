import logging

from sqlmodel import Session, SQLModel, create_engine, select

from . import config
from .models import Category

logger = logging.getLogger(__name__)


def build_engine(url: str = config.DATABASE_URL, **kwargs):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=config.SQL_ECHO, connect_args=connect_args, **kwargs)


# ----- DB setup -----
engine = build_engine()


def create_db_and_tables(bind=None):
    bind = bind or engine
    SQLModel.metadata.create_all(bind)
    seed_categories(bind)


def seed_categories(bind):
    with Session(bind) as session:
        if session.exec(select(Category)).first() is not None:
            return
        for name, description in config.DEFAULT_CATEGORIES:
            session.add(Category(name=name, description=description))
        session.commit()
        logger.info("Seeded %d default categories", len(config.DEFAULT_CATEGORIES))


def get_session():
    with Session(engine) as session:
        yield session
