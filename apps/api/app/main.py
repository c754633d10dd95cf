from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.database import Base, engine
from app.directory import DirectoryClientConfig, HttpDirectoryClient
from app.logging import configure_logging
from app.middleware.correlation_id import CorrelationIdMiddleware
from app.middleware.request_logging import RequestLoggingMiddleware
from app.otel import get_fastapi_server_request_hook, setup_otel


configure_logging()
logger = logging.getLogger("app.lifecycle")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.auto_create_schema:
        Base.metadata.create_all(bind=engine)

    directory_config = DirectoryClientConfig.from_settings(settings)
    app.state.directory_client = HttpDirectoryClient(directory_config)
    logger.info("system.started", extra={"operation": "startup"})
    try:
        yield
    finally:
        app.state.directory_client.close()
        logger.info("system.stopped", extra={"operation": "shutdown"})


app = FastAPI(title=get_settings().app_name, version=get_settings().app_version, lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.include_router(api_router)

setup_otel(get_settings())

if not getattr(app, "_is_instrumented_by_opentelemetry", False):
    FastAPIInstrumentor().instrument_app(app, server_request_hook=get_fastapi_server_request_hook())
