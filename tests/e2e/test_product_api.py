from unittest.mock import patch

import pytest

from app.models.product_model import CompressedImage, Product
from app.services.compression_service import ImageCompressor
from app.tasks.compression_tasks import CompressionPipeline
from app.utils.rabbitmq_client import MessagePublishError


def product_payload(user_id, **overrides):
    payload = {
        "user_id": user_id,
        "product_name": "Headphones",
        "product_description": "Wireless headphones",
        "product_price": 120.0,
        "product_images": ["https://img.example.com/h1.png", "https://img.example.com/h2.png"],
    }
    payload.update(overrides)
    return payload


class TestCreateProductAPI:
    def test_create_returns_201_and_publishes(self, client, sample_user, publisher):
        resp = client.post("/products", json=product_payload(sample_user.user_id))

        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["product_name"] == "Headphones"
        assert data["user_id"] == sample_user.user_id
        assert [img["url"] for img in data["images"]] == [
            "https://img.example.com/h1.png",
            "https://img.example.com/h2.png",
        ]
        assert data["compressed_images"] == []
        publisher.publish_product.assert_called_once_with(data["product_id"])

    def test_zero_price_is_field_error(self, client, sample_user, publisher):
        resp = client.post("/products", json=product_payload(sample_user.user_id, product_price=0))

        assert resp.status_code == 400
        assert resp.json() == {"errors": {"product_price": "product_price must be greater than 0"}}
        publisher.publish_product.assert_not_called()

    def test_missing_fields_are_required(self, client):
        resp = client.post("/products", json={"product_price": 5})

        assert resp.status_code == 400
        errors = resp.json()["errors"]
        assert errors["user_id"] == "user_id is required"
        assert errors["product_name"] == "product_name is required"
        assert errors["product_images"] == "product_images is required"

    def test_malformed_json(self, client):
        resp = client.post(
            "/products", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid request"}

    def test_zero_owner_is_required(self, client, publisher):
        resp = client.post("/products", json=product_payload(0))

        assert resp.status_code == 400
        assert resp.json() == {"errors": {"user_id": "user_id is required"}}
        publisher.publish_product.assert_not_called()

    def test_null_images_are_required(self, client, sample_user):
        resp = client.post("/products", json=product_payload(sample_user.user_id, product_images=None))

        assert resp.status_code == 400
        assert resp.json() == {"errors": {"product_images": "product_images is required"}}

    def test_unknown_owner(self, client, db_session):
        resp = client.post("/products", json=product_payload(12345))

        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid user_id"
        assert db_session.query(Product).count() == 0

    def test_publish_failure_is_500_but_rows_remain(self, client, sample_user, publisher, db_session):
        publisher.publish_product.side_effect = MessagePublishError("broker down")

        resp = client.post("/products", json=product_payload(sample_user.user_id))

        assert resp.status_code == 500
        assert resp.json()["error"] == "Failed to create product"
        assert db_session.query(Product).count() == 1


class TestGetProductAPI:
    def test_not_found(self, client):
        resp = client.get("/products/999999")

        assert resp.status_code == 404
        assert resp.json()["error"] == "Product not found"

    def test_invalid_id(self, client):
        resp = client.get("/products/abc")

        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid product id"

    def test_second_read_is_served_from_cache(self, client, product_factory, fake_redis):
        product = product_factory(["https://img.example.com/a.png"])

        first = client.get(f"/products/{product.product_id}")
        assert first.status_code == 200
        assert str(product.product_id) in fake_redis.store

        with patch("app.domain.repositories.product_repository.ProductRepository.get_with_images") as load:
            second = client.get(f"/products/{product.product_id}")
        load.assert_not_called()
        assert second.json() == first.json()

    def test_nested_images_use_id_and_url(self, client, product_factory, session_factory):
        product = product_factory(["https://img.example.com/a.png"])
        source = product.images[0]
        with session_factory() as session:
            session.add(
                CompressedImage(
                    image_url="https://product-bucket.s3.amazonaws.com/compressed_images/1_a.png",
                    product_id=product.product_id,
                    image_id=source.image_id,
                )
            )
            session.commit()

        data = client.get(f"/products/{product.product_id}").json()

        assert data["images"] == [{"id": source.image_id, "url": "https://img.example.com/a.png"}]
        assert len(data["compressed_images"]) == 1
        assert set(data["compressed_images"][0]) == {"id", "url"}

    def test_cached_snapshot_keeps_source_image(self, client, product_factory, session_factory, product_cache):
        product = product_factory(["https://img.example.com/a.png"])
        source = product.images[0]
        with session_factory() as session:
            session.add(
                CompressedImage(image_url="https://b/c.jpg", product_id=product.product_id, image_id=source.image_id)
            )
            session.commit()

        client.get(f"/products/{product.product_id}")

        cached = product_cache.get_product(product.product_id)
        assert cached.compressed_images[0].image_id == source.image_id


class TestListProductsAPI:
    def test_missing_user_id(self, client):
        resp = client.get("/products")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Missing user_id parameter"

    @pytest.mark.parametrize(
        "query, message",
        [
            ("user_id=abc", "Invalid user_id parameter"),
            ("user_id=1&min_price=cheap", "Invalid min_price parameter"),
            ("user_id=1&max_price=lots", "Invalid max_price parameter"),
        ],
    )
    def test_malformed_parameters(self, client, query, message):
        resp = client.get(f"/products?{query}")
        assert resp.status_code == 400
        assert resp.json()["error"] == message

    def test_filters_by_owner_and_price(self, client, product_factory, sample_user):
        product_factory(["https://img.example.com/a.png"], name="Mug", price=8.0)
        product_factory([], name="Teapot", price=30.0)

        resp = client.get(f"/products?user_id={sample_user.user_id}&min_price=10")

        assert resp.status_code == 200
        assert [p["product_name"] for p in resp.json()] == ["Teapot"]


class TestCompressionFlow:
    def test_failed_fetch_leaves_one_compressed_image_and_cache_repopulates(
        self, client, product_factory, session_factory, blob_storage, product_cache,
        fake_redis, db_session, png_bytes, http_get,
    ):
        good, missing = "https://img.example.com/good.png", "https://img.example.com/missing.png"
        product = product_factory([good, missing], product_id=1103)

        # Warm the cache with the pre-compression snapshot
        warm = client.get("/products/1103")
        assert warm.json()["compressed_images"] == []
        assert "1103" in fake_redis.store

        pipeline = CompressionPipeline(
            session_factory, ImageCompressor(blob_storage, max_workers=0), product_cache
        )
        with patch(
            "app.services.compression_service.requests.get",
            side_effect=http_get({good: png_bytes, missing: 404}),
        ):
            outcome = pipeline.handle_message("1103")

        assert outcome.persisted == 1
        assert db_session.query(CompressedImage).filter_by(product_id=1103).count() == 1
        assert "1103" not in fake_redis.store

        resp = client.get("/products/1103")
        assert resp.status_code == 200
        compressed = resp.json()["compressed_images"]
        assert len(compressed) == 1
        assert set(compressed[0]) == {"id", "url"}
        assert compressed[0]["url"].endswith(f"compressed_images/{product.images[0].image_id}_good.png")
        assert "1103" in fake_redis.store


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}
