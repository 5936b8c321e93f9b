"""Exception handlers to translate domain exceptions to HTTP responses."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.domain.exceptions import (
    CompressionException,
    DomainException,
    InvalidOwner,
    InvalidQueryParameter,
    ProductCreationFailed,
    ProductException,
    ProductLookupFailed,
    ProductNotFound,
    ProductPublishFailed,
    RequiredParameterMissing,
    UserException,
    ValidationException,
)
from app.schemas.field_errors import format_field_errors, is_unparseable_body
from app.utils.logger import get_logger

logger = get_logger("exception_handlers")


class DomainExceptionHandler:
    """Centralized handler for domain exceptions."""

    # Mapping of domain exceptions to HTTP status codes
    EXCEPTION_STATUS_MAP = {
        # User exceptions
        InvalidOwner: status.HTTP_400_BAD_REQUEST,

        # Product exceptions
        ProductNotFound: status.HTTP_404_NOT_FOUND,
        ProductCreationFailed: status.HTTP_500_INTERNAL_SERVER_ERROR,
        ProductPublishFailed: status.HTTP_500_INTERNAL_SERVER_ERROR,
        ProductLookupFailed: status.HTTP_500_INTERNAL_SERVER_ERROR,

        # Validation exceptions
        InvalidQueryParameter: status.HTTP_400_BAD_REQUEST,
        RequiredParameterMissing: status.HTTP_400_BAD_REQUEST,
    }

    # Base exception type status codes
    BASE_EXCEPTION_STATUS_MAP = {
        UserException: status.HTTP_400_BAD_REQUEST,
        ProductException: status.HTTP_400_BAD_REQUEST,
        ValidationException: status.HTTP_400_BAD_REQUEST,
        CompressionException: status.HTTP_500_INTERNAL_SERVER_ERROR,
    }

    @classmethod
    def status_for(cls, exc: DomainException) -> int:
        status_code = cls.EXCEPTION_STATUS_MAP.get(type(exc))

        # Fall back to base exception type mapping
        if status_code is None:
            for base_type, base_status in cls.BASE_EXCEPTION_STATUS_MAP.items():
                if isinstance(exc, base_type):
                    status_code = base_status
                    break

        if status_code is None:
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return status_code

    @classmethod
    def handle_domain_exception(cls, exc: DomainException) -> JSONResponse:
        """Convert domain exception to a JSON error response."""
        return JSONResponse(
            status_code=cls.status_for(exc),
            content={"error": exc.message, "error_code": exc.error_code},
        )

    @staticmethod
    def handle_validation_error(exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        field_errors = {} if is_unparseable_body(errors) else format_field_errors(errors)
        if not field_errors:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "Invalid request"},
            )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"errors": field_errors},
        )


async def _domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    return DomainExceptionHandler.handle_domain_exception(exc)


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Invalid payload for {request.method} {request.url.path}: {exc.errors()}")
    return DomainExceptionHandler.handle_validation_error(exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, _domain_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
