"""
Process-wide database handle.

The engine and session factory are created lazily on first use behind a lock,
so concurrent first requests share a single connection pool. Handlers receive
a request-scoped ``Session`` through :func:`get_db` and pass it explicitly to
the repository functions.
"""

import logging
import threading
import uuid
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from blog.core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def generate_id() -> str:
    """Opaque primary key for every entity."""
    return str(uuid.uuid4())


class Database:
    """Lazily initialised engine + session factory."""

    def __init__(self, url: Optional[str] = None, echo: bool = False):
        self._url = url
        self._echo = echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._lock = threading.Lock()

    @property
    def url(self) -> str:
        return self._url or settings.DATABASE_URL

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def initialize(self) -> Engine:
        """Create the engine exactly once; safe to call from any thread."""
        if self._engine is not None:
            return self._engine

        with self._lock:
            if self._engine is None:
                connect_args = {}
                if self.url.startswith("sqlite"):
                    connect_args["check_same_thread"] = False

                engine = create_engine(
                    self.url,
                    echo=self._echo,
                    pool_pre_ping=True,
                    connect_args=connect_args,
                )
                self._session_factory = sessionmaker(
                    autocommit=False, autoflush=False, bind=engine
                )
                self._engine = engine
                logger.info(f"Database engine initialized ({engine.url.drivername})")

        return self._engine

    @property
    def engine(self) -> Engine:
        return self.initialize()

    def session(self) -> Session:
        self.initialize()
        return self._session_factory()

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
            self._engine = None
            self._session_factory = None


database = Database(echo=settings.SQL_ECHO)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    db = database.session()
    try:
        yield db
    finally:
        db.close()
