from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from programa_fumigacion.models import Base
from programa_fumigacion.settings import Settings


def create_engine_from_url(database_url: str) -> Engine:
    if database_url.startswith("sqlite:"):
        # The SQLite file may live in an instance dir that does not exist yet.
        db_path = make_url(database_url).database
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        engine = create_engine(
            database_url,
            future=True,
            connect_args={"check_same_thread": False},
        )
        with engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
            conn.exec_driver_sql("PRAGMA foreign_keys=ON;")
        return engine

    # Postgres (Supabase) connections get dropped by the pooler; check before use.
    return create_engine(database_url, future=True, pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def session_factory_from_settings(settings: Settings) -> sessionmaker[Session]:
    """Engine + esquema + factory, el arranque común de main.py, run_server.py y scripts."""
    engine = create_engine_from_url(settings.DATABASE_URL)
    init_db(engine)
    return make_session_factory(engine)


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
