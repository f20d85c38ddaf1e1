"""Appels au collaborateur de persistance depuis les sessions d'édition.

FR: Toute erreur levée par la couche de persistance est journalisée puis
    propagée sous forme de PersistenceError ; les enregistrements lus sont
    revalidés en modèles Pydantic.
EN: Every storage failure is logged and surfaced as a PersistenceError;
    records read back are re-validated into Pydantic models.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Iterable
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from gescom.errors import PersistenceError
from gescom.storage.base import Record

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


async def call_storage(operation: str, awaitable: Awaitable[T]) -> T:
    """Attend un appel de persistance et normalise ses erreurs.

    Raises:
        PersistenceError: Erreur de stockage, ou toute autre exception du
            collaborateur encapsulée.
    """
    try:
        return await awaitable
    except PersistenceError:
        logger.exception("Échec de l'appel de persistance %s", operation)
        raise
    except Exception as exc:
        logger.exception("Erreur inattendue pendant %s", operation)
        msg = f"Échec de l'appel de persistance {operation} : {exc}"
        raise PersistenceError(msg) from exc


def validate_record(model: type[M], record: Record, **defaults: Any) -> M:
    """Valide un enregistrement brut, complété par ``defaults``."""
    try:
        return model.model_validate({**defaults, **record})
    except PydanticValidationError as exc:
        msg = f"Enregistrement {model.__name__} invalide : {exc.error_count()} erreur(s)"
        raise PersistenceError(msg) from exc


def validate_records(model: type[M], records: Iterable[Record]) -> list[M]:
    """Valide une liste d'enregistrements bruts."""
    return [validate_record(model, record) for record in records]
