from __future__ import annotations

from typing import Generic, Iterable, Sequence, Type

from sqlalchemy.orm import Session

from app.domain.repositories.base import ID, IRepository, T


class SQLAlchemyRepository(Generic[T, ID], IRepository[T, ID]):
    """Generic SQLAlchemy repository; writes stay in the caller's transaction."""

    def __init__(self, model: Type[T], db: Session):
        self.model = model
        self.db = db

    def add(self, obj: T) -> T:
        self.db.add(obj)
        return obj

    def add_all(self, objs: Iterable[T]) -> Sequence[T]:
        objs = list(objs)
        self.db.add_all(objs)
        return objs

    def get(self, id_: ID) -> T | None:
        return self.db.get(self.model, id_)

    def exists(self, id_: ID) -> bool:
        return self.get(id_) is not None

    def flush(self) -> None:
        self.db.flush()
