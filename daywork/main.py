import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from daywork.core.config import settings
from daywork.core.errors import WorkflowError
from daywork.core.logging import setup_logging
from daywork.routers import admin, auth, conversations, jobs, verification, workers
from daywork.storage import Storage, build_storage
from daywork.utils.email import Mailer

logger = logging.getLogger(__name__)


async def workflow_error_handler(request: Request, exc: WorkflowError):
    body = {"detail": exc.detail}
    if exc.field:
        body["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=body)


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(storage: Storage = None, mailer=None) -> FastAPI:
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.PROJECT_NAME)
    app.state.storage = storage if storage is not None else build_storage(settings)
    app.state.mailer = mailer if mailer is not None else Mailer()

    app.add_exception_handler(WorkflowError, workflow_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(auth.router)
    app.include_router(jobs.router)
    app.include_router(workers.router)
    app.include_router(conversations.router)
    app.include_router(verification.router)
    app.include_router(admin.router)

    @app.get("/")
    async def read_root():
        return {"service": settings.PROJECT_NAME, "status": "ok"}

    # Create tables on startup (Simple approach)
    @app.on_event("startup")
    def on_startup():
        logger.info("Starting %s with %s storage", settings.PROJECT_NAME, type(app.state.storage).__name__)
        app.state.storage.create_schema()

    return app


app = create_app()
