"""Couche de persistance du moteur de gestion commerciale.

FR: Interface abstraite asynchrone consommée par les sessions d'édition,
    et hiérarchie d'erreurs de persistance. Le connecteur mémoire est dans
    ``gescom.storage.connectors.memory``.
EN: Abstract async interface consumed by editing sessions, and the storage
    error hierarchy. The in-memory connector lives in
    ``gescom.storage.connectors.memory``.
"""

from gescom.storage.base import BaseStorage, Record
from gescom.storage.errors import (
    StorageConnectionError,
    StorageError,
    StorageNotFoundError,
)

__all__ = [
    "BaseStorage",
    "Record",
    "StorageConnectionError",
    "StorageError",
    "StorageNotFoundError",
]
