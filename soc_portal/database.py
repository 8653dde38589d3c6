from contextlib import contextmanager
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """
    Owns the engine (connection pool) and session factory for one application.

    Built once by the application factory and handed to request handlers through
    ``app.state.database``; sessions are scoped with ``session()``.
    """

    def __init__(self, url: str = None, **engine_kwargs):
        self.url = url or settings.DB_URL

        # sqlite needs connect_args to allow access from FastAPI worker threads
        connect_args = {}
        if self.url.startswith("sqlite"):
            connect_args = {"check_same_thread": False}
            if self.url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every checkout sees an empty database
                engine_kwargs.setdefault("poolclass", StaticPool)
        else:
            engine_kwargs.setdefault("pool_size", settings.DB_POOL_SIZE)
            engine_kwargs.setdefault("pool_timeout", settings.DB_POOL_TIMEOUT)
            engine_kwargs.setdefault("pool_recycle", settings.DB_POOL_RECYCLE)

        # Dead connections are detected on checkout and replaced
        engine_kwargs.setdefault("pool_pre_ping", True)

        self.engine = create_engine(self.url, connect_args=connect_args, future=True, **engine_kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False)
        logger.info(f"Database pool created for {self.engine.url.render_as_string(hide_password=True)}")

    @contextmanager
    def session(self):
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def create_all(self):
        # Import models so they register on Base.metadata
        from .models import downtime_report  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def dispose(self):
        self.engine.dispose()
        logger.info("Database pool closed")
