"""Queue-triggered compression of product images.

Run with ``python -m app.tasks.compression_tasks``.
"""

import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import AppSettings, settings as default_settings
from app.db.session import DBSessionManager
from app.domain.exceptions import CompressedImagesPersistFailed
from app.domain.unit_of_work import UnitOfWork
from app.services.compression_service import (
    CompressionBatch,
    CompressionFailure,
    ImageCompressor,
    SourceImage,
)
from app.utils.cache import ProductCache
from app.utils.external_storage import BlobStorage
from app.utils.logger import configure_logging, get_logger
from app.utils.rabbitmq_client import RabbitMQWorker

logger = get_logger("compression_tasks")


class CommitPolicy(str, Enum):
    # Persist every successful image even if siblings failed
    BEST_EFFORT = "best_effort"
    # Persist nothing unless every image succeeded
    ALL_OR_NOTHING = "all_or_nothing"


BEST_EFFORT_COMMIT = CommitPolicy.BEST_EFFORT


@dataclass
class PipelineOutcome:
    product_id: int
    total_images: int
    persisted: int = 0
    failures: List[CompressionFailure] = field(default_factory=list)
    invalidated: bool = False

    @property
    def first_error(self) -> Optional[Exception]:
        return self.failures[0].error if self.failures else None

    @property
    def partial(self) -> bool:
        return bool(self.failures) and self.persisted > 0


class CompressionPipeline:
    """Load images, compress them, persist results, invalidate the cache."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        compressor: ImageCompressor,
        cache: ProductCache,
        policy: CommitPolicy = BEST_EFFORT_COMMIT,
    ):
        self._session_factory = session_factory
        self._compressor = compressor
        self._cache = cache
        self._policy = CommitPolicy(policy)

    @property
    def policy(self) -> CommitPolicy:
        return self._policy

    def load_images(self, product_id: int) -> List[SourceImage]:
        with self._session_factory() as session:
            uow = UnitOfWork(session)
            return [
                SourceImage(image_id=img.image_id, image_url=img.image_url)
                for img in uow.images.list_for_product(product_id)
            ]

    def persist(self, product_id: int, batch: CompressionBatch) -> int:
        if self._policy is CommitPolicy.ALL_OR_NOTHING and not batch.ok:
            logger.warning(
                f"Discarding {len(batch.results)} compressed images for product ID {product_id}: "
                f"{len(batch.failures)} image(s) failed"
            )
            return 0

        try:
            with self._session_factory() as session:
                with UnitOfWork(session) as uow:
                    uow.compressed_images.add_many(product_id, batch.results)
        except SQLAlchemyError as e:
            logger.error(f"Transaction failed while storing compressed images for product ID {product_id}: {e}")
            raise CompressedImagesPersistFailed(product_id, str(e)) from e
        return len(batch.results)

    def process(self, product_id: int) -> PipelineOutcome:
        images = self.load_images(product_id)
        logger.info(f"Compressing {len(images)} images for product ID {product_id}")

        batch = self._compressor.compress_all(images)
        if batch.first_error is not None:
            logger.warning(
                f"{len(batch.failures)} of {len(images)} images failed for product ID {product_id}, "
                f"first error: {batch.first_error}"
            )

        outcome = PipelineOutcome(product_id=product_id, total_images=len(images), failures=batch.failures)
        outcome.persisted = self.persist(product_id, batch)
        outcome.invalidated = self._cache.invalidate_product(product_id)
        if outcome.invalidated:
            logger.info(f"Compressed images stored successfully for product ID {product_id}")
        return outcome

    def handle_message(self, body: str) -> Optional[PipelineOutcome]:
        try:
            product_id = int(body.strip())
        except ValueError:
            logger.error(f"Failed to parse product ID '{body}'")
            return None
        return self.process(product_id)


def build_pipeline(app_settings: AppSettings, db: DBSessionManager, cache: ProductCache) -> CompressionPipeline:
    storage = BlobStorage.from_settings(app_settings.storage)
    storage.ensure_bucket()
    compressor = ImageCompressor(
        storage,
        quality=app_settings.compression.jpeg_quality,
        fetch_timeout=app_settings.compression.fetch_timeout,
        max_workers=app_settings.compression.max_workers,
        prefix=app_settings.storage.compressed_prefix,
    )
    return CompressionPipeline(
        db.new_session,
        compressor,
        cache,
        policy=CommitPolicy(app_settings.compression.commit_policy),
    )


def main(app_settings: AppSettings = default_settings) -> None:
    configure_logging(app_settings.log_level)
    try:
        db = DBSessionManager(app_settings.database)
        db.check_connection()
        logger.info("Connected to database")

        cache = ProductCache.from_settings(app_settings.cache)
        cache.ping()
        logger.info("Connected to redis")

        pipeline = build_pipeline(app_settings, db, cache)

        worker = RabbitMQWorker(
            app_settings.messaging.rabbitmq_url,
            app_settings.messaging.product_queue,
            pipeline.handle_message,
            ack_mode=app_settings.compression.ack_mode,
            max_redeliveries=app_settings.compression.max_redeliveries,
            backoff_seconds=app_settings.compression.redelivery_backoff_seconds,
        )
        worker.connect()
    except Exception as e:
        logger.critical(f"Worker startup failed: {e}")
        sys.exit(1)

    worker.start()


if __name__ == "__main__":
    main()
