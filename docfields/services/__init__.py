"""Service layer: field store, values, completion, migration, autosave and the facade."""

from docfields.services.autosave import AutosaveQueue, session_writer
from docfields.services.completion_service import CompletionService
from docfields.services.document_field_value_service import DocumentFieldValueService
from docfields.services.field_facade import FieldFacade
from docfields.services.template_field_service import TemplateFieldService
from docfields.services.template_migration_service import CanvasSize, TemplateMigrationService

__all__ = [
    "AutosaveQueue",
    "CanvasSize",
    "CompletionService",
    "DocumentFieldValueService",
    "FieldFacade",
    "TemplateFieldService",
    "TemplateMigrationService",
    "session_writer",
]
