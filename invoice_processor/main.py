from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from invoice_processor.api import control, health
from invoice_processor.core.config import Settings, settings
from invoice_processor.core.logging_config import setup_logging
from invoice_processor.core.middleware import RequestLoggingMiddleware
from invoice_processor.core.runtime import ProcessorRuntime

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    runtime: Optional[ProcessorRuntime] = app.state.runtime
    if runtime is None:
        app_settings: Settings = app.state.settings
        setup_logging(level=app_settings.LOG_LEVEL, json_format=app_settings.LOG_JSON)
        # A bad config file at startup is fatal
        runtime = ProcessorRuntime.from_settings(app_settings)
        app.state.runtime = runtime

    runtime.start()
    logger.info("Invoice status processor started")

    yield

    logger.info("Stopping invoice status processor...")
    runtime.stop()


def create_app(runtime: Optional[ProcessorRuntime] = None, app_settings: Settings = settings) -> FastAPI:
    """
    Build the control plane app. Without a runtime one is created from
    `app_settings` when the app starts.
    """
    app = FastAPI(title=app_settings.PROJECT_NAME, lifespan=lifespan)
    app.state.settings = app_settings
    app.state.runtime = runtime

    app.include_router(health.router)
    app.include_router(control.router)
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return PlainTextResponse("Not Found", status_code=404)
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        # Details stay in the log, never in the response
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=exc)
        return PlainTextResponse("Internal Server Error", status_code=500)

    return app


app = create_app()


def run():
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
