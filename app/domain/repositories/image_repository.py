from typing import Iterable, List, Sequence

from sqlalchemy.orm import Session

from app.domain.repositories.base_sqlalchemy import SQLAlchemyRepository
from app.models.product_model import CompressedImage, Image


class ImageRepository(SQLAlchemyRepository[Image, int]):
    """Source images of a product."""

    def __init__(self, db: Session):
        super().__init__(Image, db)

    def list_for_product(self, product_id: int) -> List[Image]:
        return (
            self.db.query(Image)
            .filter(Image.product_id == product_id)
            .order_by(Image.image_id)
            .all()
        )


class CompressedImageRepository(SQLAlchemyRepository[CompressedImage, int]):
    """Compressed copies. Rows are only ever inserted."""

    def __init__(self, db: Session):
        super().__init__(CompressedImage, db)

    def add_many(self, product_id: int, results: Iterable) -> Sequence[CompressedImage]:
        return self.add_all(
            CompressedImage(
                image_url=result.url,
                image_id=result.image_id,
                product_id=product_id,
            )
            for result in results
        )

    def list_for_product(self, product_id: int) -> List[CompressedImage]:
        return (
            self.db.query(CompressedImage)
            .filter(CompressedImage.product_id == product_id)
            .order_by(CompressedImage.compressed_image_id)
            .all()
        )
