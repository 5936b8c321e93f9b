from typing import List

from sqlalchemy import Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, BigIntId


class Product(Base):
    __tablename__ = "products"

    product_id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    product_description: Mapped[str] = mapped_column(Text, nullable=False)
    product_price: Mapped[float] = mapped_column(Float, nullable=False)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Relationships
    owner = relationship("User", back_populates="products")
    images: Mapped[List["Image"]] = relationship(
        "Image",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="Image.image_id",
    )
    compressed_images: Mapped[List["CompressedImage"]] = relationship(
        "CompressedImage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="CompressedImage.compressed_image_id",
    )


class Image(Base):
    """Source image registered at product creation; never modified afterwards."""
    __tablename__ = "images"

    image_id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    product_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("products.product_id", ondelete="CASCADE"), nullable=False, index=True
    )

    product = relationship("Product", back_populates="images")
    compressed_images = relationship("CompressedImage", back_populates="image", cascade="all, delete-orphan")


class CompressedImage(Base):
    """JPEG copy of an Image, written only by the compression worker."""
    __tablename__ = "compressed_images"

    compressed_image_id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    product_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("products.product_id", ondelete="CASCADE"), nullable=False, index=True
    )
    image_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("images.image_id", ondelete="CASCADE"), nullable=False
    )

    product = relationship("Product", back_populates="compressed_images")
    image = relationship("Image", back_populates="compressed_images")
