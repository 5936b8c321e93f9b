"""Domain exceptions that represent business rule violations."""

from typing import Optional


class DomainException(Exception):
    """Base exception for all domain-related errors."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


# User Domain Exceptions
class UserException(DomainException):
    """Base exception for user-related errors."""


class InvalidOwner(UserException):
    """Product owner does not exist."""

    def __init__(self):
        super().__init__("Invalid user_id", "INVALID_USER_ID")


# Product Domain Exceptions
class ProductException(DomainException):
    """Base exception for product-related errors."""


class ProductNotFound(ProductException):
    """Product not found in the system."""

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__("Product not found", "PRODUCT_NOT_FOUND")


class ProductCreationFailed(ProductException):
    """Product rows could not be written."""

    def __init__(self):
        super().__init__("Failed to create product", "PRODUCT_CREATION_FAILED")


class ProductPublishFailed(ProductException):
    """Product was committed but the compression message was not published."""

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__("Failed to create product", "PRODUCT_PUBLISH_FAILED")


class ProductLookupFailed(ProductException):
    """Store error while reading products."""

    def __init__(self, message: str = "Error fetching product"):
        super().__init__(message, "PRODUCT_LOOKUP_FAILED")


# Validation Domain Exceptions
class ValidationException(DomainException):
    """Base exception for validation errors."""


class InvalidQueryParameter(ValidationException):
    """Query or path parameter is malformed."""

    def __init__(self, name: str):
        super().__init__(f"Invalid {name}", "INVALID_PARAMETER")


class RequiredParameterMissing(ValidationException):
    """Required query parameter is missing."""

    def __init__(self, name: str):
        super().__init__(f"Missing {name}", "REQUIRED_PARAMETER_MISSING")


# Compression Domain Exceptions
class CompressionException(DomainException):
    """Base exception for image compression errors."""


class ImageFetchFailed(CompressionException):
    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Failed to fetch image from URL {url}: {reason}", "IMAGE_FETCH_FAILED")


class ImageDecodeFailed(CompressionException):
    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Failed to compress image from URL {url}: {reason}", "IMAGE_DECODE_FAILED")


class ImageUploadFailed(CompressionException):
    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Failed to upload image {url}: {reason}", "IMAGE_UPLOAD_FAILED")


class CompressedImagesPersistFailed(CompressionException):
    def __init__(self, product_id: int, reason: str):
        self.product_id = product_id
        super().__init__(
            f"Failed to store compressed images for product ID {product_id}: {reason}",
            "COMPRESSED_IMAGES_PERSIST_FAILED",
        )
