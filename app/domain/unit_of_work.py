from abc import ABC, abstractmethod
from contextlib import AbstractContextManager

from sqlalchemy.orm import Session

from app.domain.repositories.image_repository import (
    CompressedImageRepository,
    ImageRepository,
)
from app.domain.repositories.product_repository import ProductRepository
from app.domain.repositories.user_repository import UserRepository


class IUnitOfWork(ABC):
    @abstractmethod
    def __enter__(self): ...
    @abstractmethod
    def __exit__(self, exc_type, exc_val, exc_tb): ...
    @abstractmethod
    def commit(self): ...
    @abstractmethod
    def rollback(self): ...


class UnitOfWork(AbstractContextManager, IUnitOfWork):
    """Coordinates repositories & transaction boundaries."""

    def __init__(self, db: Session):
        self.db = db
        self.users = UserRepository(db)
        self.products = ProductRepository(db)
        self.images = ImageRepository(db)
        self.compressed_images = CompressedImageRepository(db)

    # ---- context-manager API -----------------------------------------
    def __enter__(self):
        return self

    def __exit__(self, exc_type, *_):
        if exc_type is not None:
            self.rollback()
            return
        try:
            self.commit()
        except Exception:
            self.rollback()
            raise

    # ---- public -------------------------------------------------------
    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
