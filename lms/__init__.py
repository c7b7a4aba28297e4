"""
LMS Backend

This package is the REST API of a learning-management system:
1. Courses, sessions and attendance tracking
2. Assignments with file submissions and instructor reviews
3. Pre/post quizzes and randomized exams with auto-grading
4. Per-session improvement evaluations and per-course student metrics
5. Extended profiles and the administrator directory
"""

import asyncio
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from lms.common.logger import app_logger

logger = app_logger.getChild("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI application lifespan context manager.

    Initializes the database (and schema) on startup and releases the
    connection pool and Redis client on shutdown.
    """
    from lms.config import settings
    from lms.common.db.connection import get_database_settings
    from lms.database.init_db import (
        close_database,
        create_tables,
        get_session_factory,
        initialize_database,
        run_migrations,
    )
    from lms.profiles.service import seed_default_suggestions

    logger.info("Application startup sequence initiated.")
    db_settings = get_database_settings()
    await initialize_database(
        database_url=db_settings["database_url"],
        echo=settings.SQL_ECHO,
        pool_size=db_settings["pool_size"],
        max_overflow=db_settings["max_overflow"],
        pool_timeout=db_settings["pool_timeout"],
    )

    if settings.RUN_MIGRATIONS:
        await asyncio.to_thread(run_migrations, db_settings["database_url"])
    elif settings.AUTO_DB_INIT:
        await create_tables()

    if settings.SEED_DEFAULT_SUGGESTIONS:
        await seed_default_suggestions(get_session_factory())

    logger.info("Application startup sequence complete.")
    yield

    logger.info("Application shutdown sequence initiated.")
    limiter = getattr(app.state, "rate_limiter", None)
    if limiter is not None:
        await limiter.close()
    await close_database()
    logger.info("Application shutdown sequence complete.")


def create_app(
    app_name: str = "LMS Backend",
    app_description: str = "Learning management REST API"
) -> FastAPI:
    """
    Create and configure a FastAPI application instance.

    Args:
        app_name: The name of the application
        app_description: Description of the application

    Returns:
        Configured FastAPI application
    """
    from lms.api import (
        http_exception_handler,
        lms_error_handler,
        main_router,
        unhandled_exception_handler,
        validation_exception_handler,
    )
    from lms.common.error_handling import LMSError
    from lms.common.rate_limiter import RateLimiter, RateLimitMiddleware
    from lms.config import settings

    app = FastAPI(
        title=app_name,
        description=app_description,
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.RATE_LIMIT_ENABLED:
        limiter = RateLimiter.from_url(settings.REDIS_URL)
        app.state.rate_limiter = limiter
        app.add_middleware(
            RateLimitMiddleware,
            limiter=limiter,
            max_requests=settings.RATE_LIMIT_REQUESTS,
            period=settings.RATE_LIMIT_PERIOD_SECONDS,
        )

    _register_modules()
    app.include_router(main_router, prefix="/api")

    app.add_exception_handler(LMSError, lms_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    _register_health_checks(app)

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    app.mount(
        f"{settings.API_V1_STR}/uploads",
        StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
        name="uploads"
    )

    logger.info(f"Application created with {len(app.routes)} routes")
    return app


def _register_modules() -> None:
    """Register every resource router with the main API router, once per process."""
    from lms.api import register_module, registered_modules

    if registered_modules:
        return

    from lms.accounts.auth_router import router as auth_router
    from lms.accounts.users_router import router as users_router
    from lms.admin.router import router as admin_router
    from lms.assessments.exams.router import router as exams_router
    from lms.assessments.quizzes.router import router as quizzes_router
    from lms.assignments.assignments_router import router as assignments_router
    from lms.assignments.resources_router import router as resources_router
    from lms.assignments.reviews_router import router as reviews_router
    from lms.assignments.submissions_router import router as submissions_router
    from lms.courses.attendance_router import router as attendance_router
    from lms.courses.courses_router import router as courses_router
    from lms.courses.sessions_router import router as sessions_router
    from lms.evaluations.router import router as evaluations_router
    from lms.profiles.profile_router import router as profile_router
    from lms.profiles.suggestions_router import router as suggestions_router

    register_module("auth", auth_router)
    register_module("users", users_router)
    register_module("courses", courses_router)
    register_module("sessions", sessions_router)
    register_module("attendance", attendance_router)
    register_module("assignments", assignments_router)
    register_module("assignment-resources", resources_router)
    register_module("submissions", submissions_router)
    register_module("reviews", reviews_router)
    register_module("quizzes", quizzes_router)
    register_module("exams", exams_router)
    register_module("evaluations", evaluations_router)
    register_module("profile", profile_router)
    register_module("suggestions", suggestions_router)
    register_module("admin", admin_router)


def _register_health_checks(app: FastAPI) -> None:
    from lms.database.init_db import get_engine

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok"}

    @app.get("/health/db", tags=["health"])
    async def health_db():
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return JSONResponse(
                status_code=503,
                content={"status": "error", "database": "disconnected"}
            )
        return {"status": "ok", "database": "connected"}
