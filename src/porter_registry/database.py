# porter_registry/database.py
import os
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from dotenv import load_dotenv

load_dotenv() # Load .env file from project root

logger = logging.getLogger(__name__)

DEFAULT_POOL_SIZE = 5

engine: Engine | None = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)

Base = declarative_base()


def get_database_url() -> str:
    """Resolves the database URL from the environment."""
    if os.getenv("UNITTEST"):
        return "sqlite://"
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise ValueError("DATABASE_URL environment variable not set.")
    return database_url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores FOREIGN KEY clauses unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(database_url: str) -> Engine:
    """Creates an engine for the given URL with the registry's connection settings."""
    kwargs = {"echo": os.getenv("SQL_ECHO", "").lower() in ("1", "true", "yes")}
    if database_url.startswith("sqlite"):
        # Needed for SQLite to allow usage across threads
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # Every session must see the same in-memory database
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_size"] = int(os.getenv("DATABASE_POOL_SIZE", DEFAULT_POOL_SIZE))
        kwargs["pool_pre_ping"] = True

    new_engine = create_engine(database_url, **kwargs)
    if new_engine.dialect.name == "sqlite":
        event.listen(new_engine, "connect", _enable_sqlite_foreign_keys)
    return new_engine


def init_engine(database_url: str | None = None) -> Engine:
    """Builds the module engine and binds SessionLocal to it."""
    global engine
    engine = make_engine(database_url or get_database_url())
    SessionLocal.configure(bind=engine)
    logger.info(f"Database engine configured for dialect '{engine.dialect.name}'")
    return engine


def get_db():
    """Yields a session bound to the configured engine and closes it afterwards."""
    if engine is None:
        init_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_db_and_tables(bind: Engine | None = None):
    """Creates the services and gates tables if they don't exist."""
    from .app import models  # noqa: F401  (registers the tables on Base)

    if bind is None:
        bind = engine if engine is not None else init_engine()
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=bind)
    logger.info("Database tables created (if they didn't exist).")
