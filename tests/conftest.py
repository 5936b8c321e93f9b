import io
import threading
from typing import Generator
from unittest.mock import Mock

import pytest
import redis
import requests
from fastapi.testclient import TestClient
from PIL import Image as PILImage
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.api.dependencies import get_cache, get_db, get_publisher
from app.db.base import Base
from app.main import app
from app.models.product_model import Image, Product
from app.models.user_model import User
from app.utils.cache import ProductCache
from app.utils.external_storage import BlobStorage
from app.utils.rabbitmq_client import RabbitMQPublisher


# Single shared in-memory SQLite connection so every session sees the same data
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, _record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
)


class InMemoryRedis:
    """Dict-backed test double for the handful of redis calls the cache makes."""

    def __init__(self):
        self.store = {}
        self.expiry = {}
        self.fail = False
        self._lock = threading.Lock()

    def _check(self):
        if self.fail:
            raise redis.ConnectionError("redis unavailable")

    def get(self, key):
        self._check()
        with self._lock:
            return self.store.get(key)

    def set(self, key, value, ex=None):
        self._check()
        with self._lock:
            self.store[key] = value
            self.expiry[key] = ex
        return True

    def delete(self, *keys):
        self._check()
        with self._lock:
            return sum(1 for key in keys if self.store.pop(key, None) is not None)

    def ping(self):
        self._check()
        return True

    def close(self):
        pass


def make_image_bytes(fmt: str = "PNG", mode: str = "RGBA", size=(16, 16)) -> bytes:
    color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
    buf = io.BytesIO()
    PILImage.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


def fake_http_get(responses: dict):
    """Build a ``requests.get`` replacement from ``{url: bytes | status_code}``."""

    def _get(url, timeout=None):
        resp = Mock()
        outcome = responses[url]
        if isinstance(outcome, int):
            resp.status_code = outcome
            resp.raise_for_status.side_effect = requests.HTTPError(f"{outcome} Client Error for url: {url}")
        else:
            resp.status_code = 200
            resp.content = outcome
            resp.raise_for_status.return_value = None
        return resp

    return _get


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Fresh schema and session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db_session):
    return TestingSessionLocal


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def product_cache(fake_redis) -> ProductCache:
    return ProductCache(fake_redis)


@pytest.fixture
def publisher() -> Mock:
    return Mock(spec=RabbitMQPublisher)


@pytest.fixture
def minio_client() -> Mock:
    return Mock()


@pytest.fixture
def blob_storage(minio_client) -> BlobStorage:
    return BlobStorage(minio_client, "product-bucket", "https://{bucket}.s3.amazonaws.com/{key}")


@pytest.fixture(scope="function")
def client(db_session: Session, product_cache, publisher) -> Generator[TestClient, None, None]:
    """Test client with store, cache and queue dependencies overridden."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: product_cache
    app.dependency_overrides[get_publisher] = lambda: publisher
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_user(db_session: Session) -> User:
    user = User(email="owner@example.com")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def product_factory(db_session: Session, sample_user: User):
    """Insert a product with the given source image URLs."""

    def _create(urls, product_id=None, name="Camera", price=99.5):
        product = Product(
            product_id=product_id,
            product_name=name,
            product_description="A product",
            product_price=price,
            user_id=sample_user.user_id,
            images=[Image(image_url=url) for url in urls],
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        _ = list(product.images)
        db_session.expunge_all()
        return product

    return _create


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def http_get():
    """Factory turning ``{url: bytes | status_code}`` into a ``requests.get`` stub."""
    return fake_http_get
