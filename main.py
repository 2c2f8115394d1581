import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shortlink_app.config import settings
from shortlink_app.database.connection import init_db, dispose_engine, verify_database_connection
from shortlink_app.dependencies import get_queue
from shortlink_app.errors import ShortLinkError
from shortlink_app.logging_config import configure_logging
from shortlink_app.services.redirect_service import TrackingMode
from shortlink_app.workers.click_worker import ClickWorker
from shortlink_app.api import links, stats, qr, redirect

logger = configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Application '{settings.app_name}' starting up ({settings.environment})")
    init_db()

    worker, worker_task = None, None
    if TrackingMode(settings.tracking_mode) == TrackingMode.BACKGROUND and settings.run_click_worker:
        worker = ClickWorker(queue=get_queue())
        worker_task = asyncio.create_task(worker.start())

    yield

    if worker is not None:
        worker.stop()
        worker_task.cancel()
        try:
            await worker_task
        except asyncio.CancelledError:
            pass
        # Write what is already queued before the pool goes away
        await worker.drain()

    dispose_engine()
    logger.info("Application shut down")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="A URL shortener with click analytics built with FastAPI",
    debug=settings.debug,
    lifespan=lifespan
)


@app.exception_handler(ShortLinkError)
async def shortlink_error_handler(request: Request, exc: ShortLinkError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid input", "errors": jsonable_encoder(exc.errors())}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    database_ok = verify_database_connection()
    return {
        "status": "healthy" if database_ok else "degraded",
        "environment": settings.environment,
        "tracking_mode": settings.tracking_mode,
    }


######## Include routers (the catch-all redirect goes last)
app.include_router(links.router, prefix="/api")
app.include_router(stats.router, prefix="/api")
app.include_router(qr.router, prefix="/api")
app.include_router(redirect.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
