from unittest.mock import Mock

import pytest

from app.schemas.product_schema import CompressedImageOut, ImageOut, ProductOut
from app.utils.cache import ProductCache, product_key


@pytest.fixture
def snapshot() -> ProductOut:
    return ProductOut(
        product_id=42,
        product_name="Lamp",
        product_description="Desk lamp",
        product_price=19.99,
        user_id=1,
        images=[ImageOut(image_id=1, image_url="https://img.example.com/a.png")],
        compressed_images=[
            CompressedImageOut(
                compressed_image_id=5,
                image_url="https://bucket.s3.amazonaws.com/compressed_images/1_a.png",
                image_id=1,
            )
        ],
    )


class TestProductCache:
    def test_key_is_decimal_identifier(self):
        assert product_key(1103) == "1103"

    def test_round_trip_keeps_every_field(self, product_cache, snapshot):
        assert product_cache.set_product(snapshot) is True
        assert product_cache.get_product(42) == snapshot

    def test_entries_have_no_expiry(self, product_cache, fake_redis, snapshot):
        product_cache.set_product(snapshot)
        assert fake_redis.expiry["42"] is None

    def test_ttl_is_applied_when_configured(self, fake_redis, snapshot):
        ProductCache(fake_redis, ttl=60).set_product(snapshot)
        assert fake_redis.expiry["42"] == 60

    def test_absent_key_is_miss(self, product_cache):
        assert product_cache.get_product(7) is None

    def test_undecodable_value_is_miss(self, product_cache, fake_redis):
        fake_redis.store["42"] = "{not json"
        assert product_cache.get_product(42) is None

    def test_wrong_shape_is_miss(self, product_cache, fake_redis):
        fake_redis.store["42"] = '{"product_id": 42}'
        assert product_cache.get_product(42) is None

    def test_redis_errors_degrade(self, product_cache, fake_redis, snapshot):
        fake_redis.fail = True
        assert product_cache.get_product(42) is None
        assert product_cache.set_product(snapshot) is False
        assert product_cache.invalidate_product(42) is False

    def test_invalidate_deletes_key(self, product_cache, fake_redis, snapshot):
        product_cache.set_product(snapshot)
        assert product_cache.invalidate_product(42) is True
        assert "42" not in fake_redis.store

    def test_invalidate_missing_key_succeeds(self, product_cache):
        assert product_cache.invalidate_product(999) is True

    def test_non_utf8_value_is_miss(self, product_cache, fake_redis):
        fake_redis.store["42"] = b"\xff\xfe not utf8"
        assert product_cache.get_product(42) is None

    def test_decoding_client_error_is_miss(self):
        client = Mock()
        client.get.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        assert ProductCache(client).get_product(42) is None

    def test_bytes_value_from_raw_client_round_trips(self, product_cache, fake_redis, snapshot):
        fake_redis.store["42"] = snapshot.model_dump_json().encode()
        assert product_cache.get_product(42) == snapshot
