from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import DatabaseSettings
from app.db.base import Base


class DBSessionManager:

    def __init__(self, db_settings: DatabaseSettings) -> None:
        self.engine: Engine = create_engine(
            db_settings.database_url,
            future=True,
            pool_size=db_settings.pool_size,
            max_overflow=db_settings.max_overflow,
            pool_timeout=db_settings.pool_timeout,
            pool_recycle=db_settings.pool_recycle,
            pool_pre_ping=db_settings.pool_pre_ping,
        )
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
            expire_on_commit=False,
        )

    def check_connection(self) -> None:
        """Raise if the database is unreachable."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def create_all(self) -> None:
        import app.models  # noqa: F401  registers mappers

        Base.metadata.create_all(bind=self.engine)

    def new_session(self) -> Session:
        return self.SessionLocal()

    def get_session(self) -> Generator[Session, None, None]:
        session: Session = self.SessionLocal()
        try:
            yield session
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
