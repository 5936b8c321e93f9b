import signal
import threading
import time
from typing import Callable, Optional

import pika
from pika.exceptions import AMQPChannelError, AMQPConnectionError, AMQPError

from app.utils.logger import get_logger

logger = get_logger("rabbitmq")

REDELIVERY_HEADER = "x-redelivery-count"

ACK_AUTO = "auto"
ACK_AFTER_SUCCESS = "after_success"


class MessagePublishError(Exception):
    """Raised when a message could not be handed to the broker."""


def _product_properties(headers: Optional[dict] = None) -> pika.BasicProperties:
    return pika.BasicProperties(
        content_type="text/plain",
        delivery_mode=pika.spec.PERSISTENT_DELIVERY_MODE,
        headers=headers,
    )


class RabbitMQPublisher:
    """Publishes product identifiers to the durable product queue.

    One instance is shared by all request threads. A BlockingConnection is
    not thread-safe, so every publish holds ``_lock``. Publisher confirms are
    enabled, so ``publish_product`` returning means the broker accepted the
    message.
    """

    def __init__(self, url: str, queue: str, connection_factory=pika.BlockingConnection):
        self._params = pika.URLParameters(url)
        self._queue = queue
        self._connection_factory = connection_factory
        self._lock = threading.Lock()
        self._conn = None
        self._chan = None

    def connect(self) -> None:
        """Open connection and channel and declare the queue. Raises on failure."""
        self._conn = self._connection_factory(self._params)
        self._chan = self._conn.channel()
        self._chan.queue_declare(queue=self._queue, durable=True)
        self._chan.confirm_delivery()
        logger.info(f"Connected to RabbitMQ, queue '{self._queue}' declared")

    def close(self) -> None:
        with self._lock:
            if self._conn is not None and self._conn.is_open:
                try:
                    self._conn.close()
                except AMQPError as e:
                    logger.warning(f"Error closing RabbitMQ connection: {e}")
            self._conn = None
            self._chan = None

    # ------------------------------------------------------------------
    def _ensure_channel(self) -> None:
        if self._chan is None or not self._chan.is_open:
            self.connect()

    def _publish(self, body: bytes) -> None:
        self._ensure_channel()
        self._chan.basic_publish(
            exchange="",
            routing_key=self._queue,
            body=body,
            properties=_product_properties(),
            mandatory=True,
        )

    def publish_product(self, product_id: int) -> None:
        body = str(product_id).encode()
        with self._lock:
            try:
                try:
                    self._publish(body)
                except (AMQPConnectionError, AMQPChannelError) as e:
                    # Idle web processes lose their connection to heartbeats
                    logger.warning(f"RabbitMQ connection lost ({e!r}), reconnecting")
                    self._conn = None
                    self._chan = None
                    self._publish(body)
            except AMQPError as e:
                raise MessagePublishError(
                    f"Failed to publish product {product_id} to {self._queue}: {e!r}"
                ) from e
        logger.info(f"Product creation message published for product {product_id}")


class RabbitMQWorker:
    """Blocking single-consumer loop over the product queue.

    Messages are handled one at a time (prefetch 1). With ``ack_mode="auto"``
    the broker considers a message consumed at delivery, so a failed or
    interrupted handler loses it. With ``ack_mode="after_success"`` a failed
    handler republishes the message with an incremented redelivery header
    after an exponential backoff, and rejects it once ``max_redeliveries``
    is reached.
    """

    def __init__(
        self,
        url: str,
        queue: str,
        callback: Callable[[str], object],
        *,
        ack_mode: str = ACK_AUTO,
        max_redeliveries: int = 3,
        backoff_seconds: float = 1.0,
        connection_factory=pika.BlockingConnection,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if ack_mode not in (ACK_AUTO, ACK_AFTER_SUCCESS):
            raise ValueError(f"Unknown ack mode: {ack_mode}")
        self._params = pika.URLParameters(url)
        self._queue = queue
        self._callback = callback
        self._ack_mode = ack_mode
        self._max_redeliveries = max_redeliveries
        self._backoff_seconds = backoff_seconds
        self._connection_factory = connection_factory
        self._sleep = sleep
        self._conn = None
        self._chan = None

    @property
    def auto_ack(self) -> bool:
        return self._ack_mode == ACK_AUTO

    def connect(self) -> None:
        self._conn = self._connection_factory(self._params)
        self._chan = self._conn.channel()
        self._chan.queue_declare(queue=self._queue, durable=True)
        self._chan.basic_qos(prefetch_count=1)
        self._chan.basic_consume(self._queue, self._on_message, auto_ack=self.auto_ack)
        logger.info(f"Consuming '{self._queue}' (ack_mode={self._ack_mode})")

    # ------------------------------------------------------------------
    def _on_message(self, ch, method, properties, body: bytes):
        message = body.decode("utf-8", errors="replace")
        logger.info(f"Received product: {message}")
        try:
            self._callback(message)
        except Exception as e:
            logger.exception(f"Processing of message '{message}' failed: {e}")
            if not self.auto_ack:
                self._retry_or_reject(ch, method, properties, body)
            return

        if not self.auto_ack:
            ch.basic_ack(delivery_tag=method.delivery_tag)

    def _retry_or_reject(self, ch, method, properties, body: bytes):
        headers = dict((properties.headers or {}) if properties else {})
        attempt = int(headers.get(REDELIVERY_HEADER, 0))
        if attempt >= self._max_redeliveries:
            logger.error(
                f"Dropping message '{body!r}' after {attempt} redeliveries"
            )
            ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)
            return

        delay = self._backoff_seconds * (2 ** attempt)
        logger.warning(f"Redelivering message '{body!r}' in {delay:.1f}s (attempt {attempt + 1})")
        self._sleep(delay)
        headers[REDELIVERY_HEADER] = attempt + 1
        ch.basic_publish(
            exchange="",
            routing_key=self._queue,
            body=body,
            properties=_product_properties(headers),
        )
        ch.basic_ack(delivery_tag=method.delivery_tag)

    @staticmethod
    def _raise_interrupt(signum, frame):
        raise KeyboardInterrupt(f"signal {signum}")

    def start(self):
        """Consume until SIGINT/SIGTERM. A message in flight is abandoned."""
        if self._chan is None:
            self.connect()
        previous = signal.signal(signal.SIGTERM, self._raise_interrupt)
        logger.info("Waiting for messages")
        try:
            self._chan.start_consuming()
        except KeyboardInterrupt:
            logger.info("Shutting down")
        finally:
            signal.signal(signal.SIGTERM, previous)
            self.close()

    def close(self):
        if self._conn is not None and self._conn.is_open:
            try:
                self._conn.close()
            except AMQPError as e:
                logger.warning(f"Error closing RabbitMQ connection: {e}")
        self._conn = None
        self._chan = None
