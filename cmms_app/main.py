# cmms_app/main.py
import os
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from cmms_app.auth import router as auth_router
from cmms_app.categories import router as category_router
from cmms_app.config import DOCUMENTS_URL_PREFIX, get_cors_origins, get_upload_dir
from cmms_app.database import get_db, init_db
from cmms_app.departments import router as department_router
from cmms_app.enums import display_metadata
from cmms_app.equipments import router as equipment_router
from cmms_app.logging_config import setup_logging
from cmms_app.maintenance import router as maintenance_router
from cmms_app.material_requests import router as material_request_router
from cmms_app.middleware import LoggingMiddleware
from cmms_app.notifications import router as notification_router
from cmms_app.permissions import router as permission_router
from cmms_app.proforma_invoices import router as invoice_router
from cmms_app.proforma_invoices import upload_router
from cmms_app.reports import router as report_router
from cmms_app.settings import router as settings_router
from cmms_app.task_maintenance import router as task_maintenance_router
from cmms_app.tasks import router as task_router
from cmms_app.users import router as user_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    os.makedirs(get_upload_dir(), exist_ok=True)
    conn = get_db()
    try:
        init_db(conn)
    finally:
        conn.close()
    structlog.get_logger().info("database_ready")
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Maintenance Management API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    # the directory itself is created on startup
    app.mount(
        DOCUMENTS_URL_PREFIX,
        StaticFiles(directory=get_upload_dir(), check_dir=False),
        name="documentos",
    )

    # Register routers
    app.include_router(auth_router, tags=["Auth"])
    app.include_router(equipment_router, prefix="/equipment", tags=["Equipment"])
    app.include_router(maintenance_router, prefix="/maintenance-tasks", tags=["Maintenance Tasks"])
    app.include_router(task_router, prefix="/tasks", tags=["Task Catalog"])
    app.include_router(task_maintenance_router, prefix="/task-maintenance", tags=["Task Maintenance"])
    app.include_router(category_router, prefix="/categories", tags=["Categories"])
    app.include_router(department_router, prefix="/departments", tags=["Departments"])
    app.include_router(user_router, prefix="/users", tags=["Users"])
    app.include_router(permission_router, prefix="/permissions", tags=["Permissions"])
    app.include_router(settings_router, prefix="/settings", tags=["Settings"])
    app.include_router(notification_router, prefix="/notifications", tags=["Notifications"])
    app.include_router(report_router, prefix="/reports", tags=["Reports"])
    app.include_router(material_request_router, prefix="/material-requests", tags=["Supply Chain"])
    app.include_router(invoice_router, prefix="/proforma-invoices", tags=["Supply Chain"])
    app.include_router(upload_router, tags=["Supply Chain"])

    @app.get("/display-metadata", tags=["Meta"])
    def get_display_metadata():
        return display_metadata()

    return app


app = create_app()
