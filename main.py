import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from starlette.exceptions import HTTPException as StarletteHTTPException

import database
from config import Settings
from errors import format_validation_errors
from image_storage import ImageStorage
from logging_setup import configure_logging
from notifications import Mailer
from routes_appointments import router as appointments_router
from routes_auth import router as auth_router
from routes_blogs import router as blogs_router
from services import AppointmentService, AuthService, BlogService

logger = structlog.get_logger(__name__)


def error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message}, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            return error_response(404, "Endpoint not found")
        return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response(400, format_validation_errors(exc.errors()))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("unhandled_error", path=request.url.path, method=request.method, exc_info=exc)
        return error_response(500, "Server Error")


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    image_storage: Optional[ImageStorage] = None,
    mailer: Optional[Mailer] = None,
) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings)

    if db is None:
        db = database.connect(settings)
    image_storage = image_storage or ImageStorage(settings)
    mailer = mailer or Mailer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.ensure_indexes(db)
        logger.info("startup", environment=settings.environment, database=settings.database_name)
        yield
        logger.info("shutdown")
        db.client.close()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    app.state.settings = settings
    app.state.db = db
    app.state.auth_service = AuthService(db, settings)
    app.state.blog_service = BlogService(db, settings, image_storage)
    app.state.appointment_service = AppointmentService(db, settings, mailer)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return response

    register_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(blogs_router)
    app.include_router(appointments_router)

    @app.get("/health")
    def health():
        return {
            "status": "OK",
            "dbStatus": "Connected" if database.ping(db) else "Disconnected",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 5000))
    uvicorn.run(app, host="0.0.0.0", port=port)
