"""Sessions d'édition : copie de travail, validation puis persistance."""

from gescom.session.document import DocumentSession
from gescom.session.production import ProductionSession

__all__ = [
    "DocumentSession",
    "ProductionSession",
]
