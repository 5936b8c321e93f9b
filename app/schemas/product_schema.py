from typing import List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SerializationInfo,
    SerializerFunctionWrapHandler,
    model_serializer,
)


class ProductCreate(BaseModel):
    user_id: int = Field(..., gt=0)
    product_name: str = Field(..., min_length=1)
    product_description: str = Field(..., min_length=1)
    product_price: float = Field(..., gt=0)
    product_images: List[str]


# Nested images go over the wire as {"id", "url"}. Dumping without aliases
# keeps the attribute names, which is what the cache stores.
class ImageOut(BaseModel):
    image_id: int = Field(validation_alias=AliasChoices("image_id", "id"), serialization_alias="id")
    image_url: str = Field(validation_alias=AliasChoices("image_url", "url"), serialization_alias="url")
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class CompressedImageOut(BaseModel):
    compressed_image_id: int = Field(
        validation_alias=AliasChoices("compressed_image_id", "id"), serialization_alias="id"
    )
    image_url: str = Field(validation_alias=AliasChoices("image_url", "url"), serialization_alias="url")
    # Source image; not part of the wire format
    image_id: Optional[int] = None
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @model_serializer(mode="wrap")
    def _hide_source_image(self, handler: SerializerFunctionWrapHandler, info: SerializationInfo):
        data = handler(self)
        if info.by_alias:
            data.pop("image_id", None)
        return data


class ProductOut(BaseModel):
    """Product snapshot returned by the API and stored in the cache."""

    product_id: int
    product_name: str
    product_description: str
    product_price: float
    user_id: int
    images: List[ImageOut] = Field(default_factory=list)
    compressed_images: List[CompressedImageOut] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)


class ProductFilter(BaseModel):
    user_id: int
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    product_name: Optional[str] = None
