from fastapi import APIRouter

from docfields.api.routes import field_values, migration, template_fields

api_router = APIRouter()

api_router.include_router(template_fields.router, prefix="/templates", tags=["Template Fields"])
api_router.include_router(field_values.router, prefix="/documents", tags=["Field Values"])
api_router.include_router(migration.router, prefix="/admin/migration", tags=["Migration"])
