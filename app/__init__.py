#app/__init__.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import close_db, get_db_context, init_db
from app.core.error_handlers import register_exception_handlers
from app.core.logging import logger
from app.middleware.request_id import RequestIDMiddleware
from app.routes import (
    admin,
    airquality,
    alerts,
    attendance,
    auth,
    classrooms,
    dashboard,
    devices,
    fingerprint,
    reports,
    students,
)
from app.services.auth_service import AuthService
from app.tasks import create_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        await init_db()

    async with get_db_context() as db:
        await AuthService(db).ensure_platform_admin()

    scheduler = create_scheduler()
    if scheduler is not None:
        scheduler.start()
        logger.info("Enrollment sweep scheduled")
    app.state.scheduler = scheduler
    logger.info("Application startup completed")

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)
    await close_db()
    logger.info("Application shutdown completed")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="API for school attendance, fingerprint enrollment and classroom sensors",
        version=settings.VERSION,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Include routers
    app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
    app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
    app.include_router(students.router, prefix="/api/students", tags=["Students"])
    app.include_router(classrooms.router, prefix="/api/classrooms", tags=["Classrooms"])
    app.include_router(devices.router, prefix="/api/devices", tags=["Devices"])
    app.include_router(fingerprint.router, prefix="/api/fingerprint", tags=["Fingerprint"])
    app.include_router(attendance.router, prefix="/api/attendance", tags=["Attendance"])
    app.include_router(airquality.router, prefix="/api/airquality", tags=["Air Quality"])
    app.include_router(alerts.router, prefix="/api/alerts", tags=["Alerts"])
    app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])
    app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])

    @app.get("/api/health", tags=["Health"])
    async def health_check():
        return {"status": "ok", "service": settings.APP_NAME, "version": settings.VERSION}

    return app
