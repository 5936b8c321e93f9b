from typing import List, Optional

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_product_service
from app.domain.exceptions import InvalidQueryParameter, RequiredParameterMissing
from app.schemas.product_schema import ProductCreate, ProductFilter, ProductOut
from app.services.product_service import ProductService
from app.utils.logger import get_logger


logger = get_logger("product_router")


def _parse_int(value: str, name: str) -> int:
    try:
        return int(value)
    except ValueError:
        logger.info(f"Invalid {name}: {value!r}")
        raise InvalidQueryParameter(name)


def _parse_float(value: Optional[str], name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        logger.info(f"Invalid {name}: {value!r}")
        raise InvalidQueryParameter(name)


class ProductRouter:
    def __init__(self):
        self.router = APIRouter(prefix="/products", tags=["Products"])
        self._register()

    def _register(self):
        self.router.post(
            "",
            response_model=ProductOut,
            status_code=status.HTTP_201_CREATED,
            summary="Create a product and queue its images for compression",
        )(self.create_product)
        self.router.get("", response_model=List[ProductOut])(self.list_products)
        self.router.get("/{product_id}", response_model=ProductOut)(self.get_product)

    def create_product(
        self,
        payload: ProductCreate,
        service: ProductService = Depends(get_product_service),
    ):
        return service.create_product(payload)

    def list_products(
        self,
        user_id: Optional[str] = None,
        min_price: Optional[str] = None,
        max_price: Optional[str] = None,
        product_name: Optional[str] = None,
        service: ProductService = Depends(get_product_service),
    ):
        if not user_id:
            logger.info("Missing user_id parameter")
            raise RequiredParameterMissing("user_id parameter")
        filters = ProductFilter(
            user_id=_parse_int(user_id, "user_id parameter"),
            min_price=_parse_float(min_price, "min_price parameter"),
            max_price=_parse_float(max_price, "max_price parameter"),
            product_name=product_name or None,
        )
        return service.list_products(filters)

    def get_product(
        self,
        product_id: str,
        service: ProductService = Depends(get_product_service),
    ):
        return service.get_product(_parse_int(product_id, "product id"))


product_router = ProductRouter().router
