from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from schoolledger.api.v1.attendance.router import router as attendance_router
from schoolledger.api.v1.auth.router import router as auth_router
from schoolledger.api.v1.classes.router import router as classes_router
from schoolledger.api.v1.exams.router import router as exams_router
from schoolledger.api.v1.fees.router import router as fees_router
from schoolledger.api.v1.grades.router import router as grades_router
from schoolledger.api.v1.reports.router import router as reports_router
from schoolledger.api.v1.students.router import router as students_router
from schoolledger.api.v1.teachers.router import router as teachers_router
from schoolledger.core.config import settings
from schoolledger.core.logging_config import configure_logging


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="School Ledger Backend")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(auth_router)
    app.include_router(classes_router)
    app.include_router(students_router)
    app.include_router(teachers_router)
    app.include_router(fees_router)
    app.include_router(attendance_router)
    app.include_router(exams_router)
    app.include_router(grades_router)
    app.include_router(reports_router)

    return app


app = create_app()
