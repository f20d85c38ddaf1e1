"""Hiérarchie d'exceptions pour la couche de persistance.

FR: Exceptions typées levées par les implémentations de BaseStorage.
    Toutes dérivent de PersistenceError ; l'absence d'un enregistrement est
    aussi une NotFoundError du moteur.
EN: Typed exceptions raised by BaseStorage implementations. All derive from
    PersistenceError; a missing record is also an engine NotFoundError.
"""

from gescom.errors import NotFoundError, PersistenceError


class StorageError(PersistenceError):
    """Erreur de base pour toutes les opérations de persistance."""


class StorageNotFoundError(StorageError, NotFoundError):
    """Enregistrement introuvable (document, produit, matière première)."""

    code = NotFoundError.code


class StorageConnectionError(StorageError):
    """Erreur de connexion ou d'accès au stockage.

    FR: Base indisponible, verrou, timeout ou autre erreur de transport.
    EN: Storage unavailable, lock, timeout or other transport error.
    """
