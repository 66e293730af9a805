"""Repository layer modules."""

from docfields.repositories.document_field_value_repository import DocumentFieldValueRepository
from docfields.repositories.document_repository import DocumentRepository
from docfields.repositories.template_field_repository import TemplateFieldRepository
from docfields.repositories.template_repository import TemplateRepository

__all__ = [
    "DocumentFieldValueRepository",
    "DocumentRepository",
    "TemplateFieldRepository",
    "TemplateRepository",
]
