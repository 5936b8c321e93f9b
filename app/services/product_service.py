from typing import List

from sqlalchemy.exc import SQLAlchemyError

from app.domain.exceptions import (
    InvalidOwner,
    ProductCreationFailed,
    ProductLookupFailed,
    ProductNotFound,
    ProductPublishFailed,
)
from app.domain.unit_of_work import UnitOfWork
from app.models.product_model import Image, Product
from app.schemas.product_schema import ProductCreate, ProductFilter, ProductOut
from app.utils.cache import ProductCache
from app.utils.logger import get_logger
from app.utils.rabbitmq_client import MessagePublishError, RabbitMQPublisher


logger = get_logger("product_service")


class ProductService:
    def __init__(
        self,
        uow: UnitOfWork,
        cache: ProductCache,
        publisher: RabbitMQPublisher,
    ):
        self.uow = uow
        self.cache = cache
        self.publisher = publisher

    # ---------------- create -------------------------------------------
    def create_product(self, payload: ProductCreate) -> ProductOut:
        """Commit the product with its images, then announce it on the queue.

        A publish failure is reported as a failed creation although the
        rows stay committed; no compensation is attempted.
        """
        if not self.uow.users.exists(payload.user_id):
            logger.info(f"User not found: {payload.user_id}")
            raise InvalidOwner()

        try:
            with self.uow:
                product = Product(
                    product_name=payload.product_name,
                    product_description=payload.product_description,
                    product_price=payload.product_price,
                    user_id=payload.user_id,
                    images=[Image(image_url=url) for url in payload.product_images],
                )
                self.uow.products.add(product)
                self.uow.products.flush()
                created = ProductOut.model_validate(product)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create product: {e}")
            raise ProductCreationFailed() from e

        try:
            self.publisher.publish_product(created.product_id)
        except MessagePublishError as e:
            logger.error(f"Failed to publish product creation message: {e}")
            raise ProductPublishFailed(created.product_id) from e

        logger.info(f"Product created: {created.product_id}")
        return created

    # ---------------- read ---------------------------------------------
    def get_product(self, product_id: int) -> ProductOut:
        """Cache-aside read.

        A concurrent invalidation can land between the store read and the
        cache write below, leaving the older snapshot cached until the next
        invalidation. Entries are not versioned.
        """
        cached = self.cache.get_product(product_id)
        if cached is not None:
            logger.info(f"Product {product_id} fetched from cache")
            return cached

        try:
            product = self.uow.products.get_with_images(product_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch product: {e}")
            raise ProductLookupFailed() from e
        if product is None:
            logger.info(f"Product {product_id} not found")
            raise ProductNotFound(product_id)

        result = ProductOut.model_validate(product)
        if self.cache.set_product(result):
            logger.info(f"Product {product_id} cached")
        return result

    def list_products(self, filters: ProductFilter) -> List[ProductOut]:
        try:
            products = self.uow.products.list_filtered(filters)
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch products: {e}")
            raise ProductLookupFailed("Error fetching products") from e
        logger.info(
            f"Fetched {len(products)} products for user_id {filters.user_id} with filters "
            f"min_price={filters.min_price}, max_price={filters.max_price}, product_name={filters.product_name}"
        )
        return [ProductOut.model_validate(p) for p in products]
