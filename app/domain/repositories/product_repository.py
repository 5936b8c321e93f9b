from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.domain.repositories.base_sqlalchemy import SQLAlchemyRepository
from app.models.product_model import Product
from app.schemas.product_schema import ProductFilter


class ProductRepository(SQLAlchemyRepository[Product, int]):
    def __init__(self, db: Session):
        super().__init__(Product, db)

    def _with_images(self):
        return (
            select(Product)
            .options(
                selectinload(Product.images),
                selectinload(Product.compressed_images),
            )
            .execution_options(populate_existing=True)
        )

    def get_with_images(self, product_id: int) -> Optional[Product]:
        stmt = self._with_images().where(Product.product_id == product_id)
        return self.db.execute(stmt).scalars().first()

    def list_filtered(self, filters: ProductFilter) -> List[Product]:
        stmt = self._with_images().where(Product.user_id == filters.user_id)
        if filters.min_price is not None:
            stmt = stmt.where(Product.product_price >= filters.min_price)
        if filters.max_price is not None:
            stmt = stmt.where(Product.product_price <= filters.max_price)
        if filters.product_name:
            stmt = stmt.where(Product.product_name.ilike(f"%{filters.product_name}%"))
        stmt = stmt.order_by(Product.product_id)
        return list(self.db.execute(stmt).scalars().all())
