import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import Settings, settings
from app.database import Database
from app.errors import (
    AppError,
    app_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from app.middleware import TimingMiddleware
from app.routers import categories, comments, posts, users

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(config: Settings = settings) -> FastAPI:
    configure_logging(config.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: one Database for the whole process, shared via app.state.
        database = Database(config.DATABASE_URL, echo=config.SQL_ECHO)
        if config.CREATE_SCHEMA_ON_STARTUP:
            await database.create_all()
        app.state.database = database
        logger.info("Started (%s)", config.APP_ENV)
        yield
        # Shutdown
        await database.dispose()

    app = FastAPI(
        title="Relations Blog API",
        description="Users, profiles, posts, categories and comments: "
        "one-to-one, one-to-many and many-to-many over SQLAlchemy",
        version="1.0.0",
        debug=config.DEBUG,
        lifespan=lifespan,
    )

    # Middleware
    app.add_middleware(TimingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Error handlers
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Routers
    app.include_router(users.router)
    app.include_router(posts.router)
    app.include_router(categories.router)
    app.include_router(comments.router)

    @app.get("/health")
    async def health(request: Request):
        await request.app.state.database.ping()
        return {"status": "healthy", "version": "1.0.0"}

    return app


app = create_app()
