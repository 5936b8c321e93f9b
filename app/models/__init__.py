# Import order is important to avoid circular dependencies
from app.models.user_model import User
from app.models.product_model import CompressedImage, Image, Product

__all__ = [
    "User",
    "Product",
    "Image",
    "CompressedImage",
]
