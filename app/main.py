from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from app.api.exception_handlers import register_exception_handlers
from app.api.routers.product_router import product_router
from app.core.config import AppSettings, settings as default_settings
from app.db.session import DBSessionManager
from app.middlewares.logging_middleware import LoggingMiddleware
from app.utils.cache import ProductCache
from app.utils.logger import configure_logging, get_logger
from app.utils.rabbitmq_client import RabbitMQPublisher


logger = get_logger("main")


def _connect(app: FastAPI, app_settings: AppSettings) -> None:
    """Open Store, Cache and Queue clients. Any failure aborts startup."""
    db = DBSessionManager(app_settings.database)
    db.check_connection()
    db.create_all()
    logger.info("Connected to database")

    cache = ProductCache.from_settings(app_settings.cache)
    cache.ping()
    logger.info("Connected to redis")

    publisher = RabbitMQPublisher(
        app_settings.messaging.rabbitmq_url,
        app_settings.messaging.product_queue,
    )
    publisher.connect()

    app.state.db = db
    app.state.cache = cache
    app.state.publisher = publisher


def _disconnect(app: FastAPI) -> None:
    publisher = getattr(app.state, "publisher", None)
    if publisher is not None:
        publisher.close()
    cache = getattr(app.state, "cache", None)
    if cache is not None:
        cache.close()
    db = getattr(app.state, "db", None)
    if db is not None:
        db.dispose()


def create_app(app_settings: Optional[AppSettings] = None) -> FastAPI:
    app_settings = app_settings or default_settings
    configure_logging(app_settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            _connect(app, app_settings)
        except Exception as e:
            logger.critical(f"Startup failed: {e}")
            _disconnect(app)
            raise
        logger.info(f"Starting server on {app_settings.host}:{app_settings.port}")
        yield
        logger.info("Shutting down server")
        _disconnect(app)
        logger.info("Server shutdown successfully")

    app = FastAPI(title="Product Service", debug=app_settings.debug, lifespan=lifespan)

    app.add_middleware(LoggingMiddleware)
    register_exception_handlers(app)

    # Prometheus instrumentation
    Instrumentator().instrument(app).expose(app)

    app.include_router(product_router)

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=default_settings.host, port=default_settings.port)
