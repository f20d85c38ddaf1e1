"""Modèles de données Pydantic pour la gestion commerciale."""

from gescom.models.catalog import CatalogEntry, ProductionResult, RecipeLine
from gescom.models.document import Document, LineItem
from gescom.models.versement import Versement

__all__ = [
    "CatalogEntry",
    "Document",
    "LineItem",
    "ProductionResult",
    "RecipeLine",
    "Versement",
]
