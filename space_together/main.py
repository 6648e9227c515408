import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from space_together.api.v1.auth.router import router as auth_router
from space_together.api.v1.class_subjects.router import router as class_subjects_router
from space_together.api.v1.class_subjects.router import school_router as school_class_subjects_router
from space_together.api.v1.class_timetables.router import router as class_timetables_router
from space_together.api.v1.class_timetables.router import school_router as school_class_timetables_router
from space_together.api.v1.classes.router import router as classes_router
from space_together.api.v1.classes.router import school_router as school_classes_router
from space_together.api.v1.education_years.router import router as education_years_router
from space_together.api.v1.events.router import router as events_router
from space_together.api.v1.grading_schemes.router import router as grading_schemes_router
from space_together.api.v1.join_requests.router import router as join_requests_router
from space_together.api.v1.main_classes.router import router as main_classes_router
from space_together.api.v1.members.router import staff_router, students_router, teachers_router
from space_together.api.v1.school_timetables.router import router as school_timetables_router
from space_together.api.v1.schools.router import router as schools_router
from space_together.api.v1.sectors.router import router as sectors_router
from space_together.api.v1.subjects.router import main_subjects_router, template_subjects_router
from space_together.api.v1.trades.router import router as trades_router
from space_together.api.v1.users.router import router as users_router
from space_together.api.v1.users.service import ensure_platform_admin
from space_together.core.config import settings
from space_together.core.exceptions import ServiceError
from space_together.db.mongo import get_mongo
from space_together.db.tenant_schema import ensure_main_schema

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    mongo = app.dependency_overrides.get(get_mongo, get_mongo)()
    db = mongo.main_db()
    await ensure_main_schema(db)
    if settings.platform_admin_email and settings.platform_admin_password:
        await ensure_platform_admin(
            db, settings.platform_admin_email, settings.platform_admin_password, settings.platform_admin_name
        )
    yield
    mongo.close()


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def _auth_headers(status_code: int):
    return {"WWW-Authenticate": "Bearer"} if status_code == 401 else None


def _error(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail), exc.headers or _auth_headers(exc.status_code))

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        return _error(exc.status_code, exc.message, _auth_headers(exc.status_code))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, _validation_message(exc))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error")


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="Space Together Backend", lifespan=lifespan)

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # Identity and catalog (main database)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(schools_router)
    app.include_router(sectors_router)
    app.include_router(trades_router)
    app.include_router(main_classes_router)
    app.include_router(main_subjects_router)
    app.include_router(template_subjects_router)
    app.include_router(grading_schemes_router)
    app.include_router(education_years_router)
    app.include_router(join_requests_router)

    # Classes, subjects and timetables: main database and tenant mirrors
    app.include_router(classes_router)
    app.include_router(school_classes_router)
    app.include_router(class_subjects_router)
    app.include_router(school_class_subjects_router)
    app.include_router(class_timetables_router)
    app.include_router(school_class_timetables_router)
    app.include_router(school_timetables_router)

    # Tenant role entities
    app.include_router(teachers_router)
    app.include_router(students_router)
    app.include_router(staff_router)

    app.include_router(events_router)

    return app


app = create_app()
