from typing import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.domain.unit_of_work import UnitOfWork
from app.services.product_service import ProductService
from app.utils.cache import ProductCache
from app.utils.rabbitmq_client import RabbitMQPublisher


__all__ = ["get_db", "get_cache", "get_publisher", "get_uow", "get_product_service"]


# Clients are created in the application lifespan and kept on app.state


def get_db(request: Request) -> Generator[Session, None, None]:
    yield from request.app.state.db.get_session()


def get_cache(request: Request) -> ProductCache:
    return request.app.state.cache


def get_publisher(request: Request) -> RabbitMQPublisher:
    return request.app.state.publisher


def get_uow(db: Session = Depends(get_db)) -> UnitOfWork:
    """Get a Unit of Work instance for dependency injection."""
    return UnitOfWork(db)


def get_product_service(
    uow: UnitOfWork = Depends(get_uow),
    cache: ProductCache = Depends(get_cache),
    publisher: RabbitMQPublisher = Depends(get_publisher),
) -> ProductService:
    return ProductService(uow, cache, publisher)
