from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Iterable, Sequence, TypeVar


T = TypeVar("T")  # SQLAlchemy model type
ID = TypeVar("ID")  # primary-key type


class IRepository(Generic[T, ID], ABC):
    """Generic repository interface."""

    @abstractmethod
    def add(self, obj: T) -> T: ...

    @abstractmethod
    def add_all(self, objs: Iterable[T]) -> Sequence[T]: ...

    @abstractmethod
    def get(self, id_: ID) -> T | None: ...

    @abstractmethod
    def exists(self, id_: ID) -> bool: ...

    @abstractmethod
    def flush(self) -> None: ...
