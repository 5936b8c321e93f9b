"""Fetch, transcode and upload product images concurrently."""

from __future__ import annotations

import io
import posixpath
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
from urllib.parse import unquote, urlparse

import requests
from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from app.domain.exceptions import ImageDecodeFailed, ImageFetchFailed, ImageUploadFailed
from app.utils.external_storage import BlobStorage
from app.utils.logger import get_logger

logger = get_logger("compression_service")

JPEG_CONTENT_TYPE = "image/jpeg"


@dataclass(frozen=True)
class SourceImage:
    image_id: int
    image_url: str


@dataclass(frozen=True)
class CompressedResult:
    url: str
    image_id: int


@dataclass(frozen=True)
class CompressionFailure:
    image_id: int
    image_url: str
    error: Exception


@dataclass
class CompressionBatch:
    """Fan-in of one product's image tasks.

    ``failures`` is in completion order, so ``first_error`` is the first
    error any task reported. Failures never remove entries from ``results``.
    """

    results: List[CompressedResult] = field(default_factory=list)
    failures: List[CompressionFailure] = field(default_factory=list)

    @property
    def first_error(self) -> Optional[Exception]:
        return self.failures[0].error if self.failures else None

    @property
    def ok(self) -> bool:
        return not self.failures


def filename_from_url(url: str) -> str:
    path = unquote(urlparse(url).path)
    name = posixpath.basename(path)
    return name or "image"


def compress_jpeg(data: bytes, quality: int) -> bytes:
    """Decode any Pillow-readable raster image and re-encode it as JPEG."""
    with PILImage.open(io.BytesIO(data)) as img:
        img.load()
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        buf = io.BytesIO()
        img.save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


class ImageCompressor:
    def __init__(
        self,
        storage: BlobStorage,
        *,
        quality: int = 75,
        fetch_timeout: float = 10.0,
        max_workers: int = 8,
        prefix: str = "compressed_images",
    ):
        if max_workers < 0:
            raise ValueError("max_workers must be >= 0")
        self._storage = storage
        self._quality = quality
        self._fetch_timeout = fetch_timeout
        self._max_workers = max_workers
        self._prefix = prefix.rstrip("/")

    def object_key(self, image: SourceImage) -> str:
        return f"{self._prefix}/{image.image_id}_{filename_from_url(image.image_url)}"

    # ------------------------------------------------------------------
    def fetch(self, url: str) -> bytes:
        try:
            resp = requests.get(url, timeout=self._fetch_timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise ImageFetchFailed(url, str(e)) from e
        return resp.content

    def compress(self, image: SourceImage, data: bytes) -> bytes:
        try:
            return compress_jpeg(data, self._quality)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise ImageDecodeFailed(image.image_url, str(e)) from e

    def upload(self, image: SourceImage, data: bytes) -> str:
        key = self.object_key(image)
        try:
            self._storage.put_bytes(key, data, JPEG_CONTENT_TYPE)
        except Exception as e:
            raise ImageUploadFailed(image.image_url, str(e)) from e
        return self._storage.public_url(key)

    def compress_one(self, image: SourceImage) -> CompressedResult:
        data = self.fetch(image.image_url)
        compressed = self.compress(image, data)
        logger.info(f"Compressed image {image.image_url}")
        url = self.upload(image, compressed)
        logger.info(f"Uploaded compressed image {url}")
        return CompressedResult(url=url, image_id=image.image_id)

    def compress_all(self, images: Iterable[SourceImage]) -> CompressionBatch:
        """Run ``compress_one`` for every image and wait for all of them.

        An interrupt (SIGINT or SIGTERM in the worker) cancels images not yet
        started and propagates without waiting for the running ones.
        """
        images = list(images)
        batch = CompressionBatch()
        if not images:
            return batch

        workers = self._max_workers or len(images)
        workers = min(workers, len(images))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="compress")
        try:
            futures: Dict[Future[CompressedResult], SourceImage] = {
                executor.submit(self.compress_one, image): image for image in images
            }
            for future in as_completed(futures):
                image = futures[future]
                try:
                    batch.results.append(future.result())
                except Exception as e:
                    logger.error(f"Image {image.image_id} failed: {e}")
                    batch.failures.append(
                        CompressionFailure(image_id=image.image_id, image_url=image.image_url, error=e)
                    )
        except BaseException:
            # Interrupted: drop queued images and leave running ones behind
            logger.warning(f"Compression interrupted, cancelling pending image tasks")
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown(wait=True)

        batch.results.sort(key=lambda r: r.image_id)
        return batch
