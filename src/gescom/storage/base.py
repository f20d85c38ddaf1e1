"""Interface abstraite pour la couche de persistance.

FR: Définit les opérations que le moteur attend de son collaborateur de
    persistance : lecture des documents, lignes, versements, catalogues,
    recettes et prochains codes ; écriture des modifications validées.
    Les lectures retournent des enregistrements bruts (``dict``) que le
    moteur revalide en modèles Pydantic ; les écritures ne transportent que
    des champs primitifs.
EN: Defines the operations the engine expects from its storage
    collaborator. Reads return raw records (``dict``) that the engine
    re-validates into Pydantic models; writes carry primitive fields only.
"""

from abc import ABCMeta, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Any

from gescom.models.enums import CatalogKind, DocumentKind, DocumentType

Record = dict[str, Any]


class BaseStorage(metaclass=ABCMeta):
    """Classe de base abstraite pour les connecteurs de persistance.

    FR: Les connecteurs concrets (SQLite, API distante, mémoire) héritent
        de cette classe. Toute erreur est levée sous forme de StorageError.
    EN: Concrete connectors inherit from this class. Every failure is
        raised as a StorageError.
    """

    # --- Documents ---

    @abstractmethod
    async def get_document(self, kind: DocumentKind, document_id: int) -> Record:
        """Récupère un document.

        Raises:
            StorageNotFoundError: Si le document n'existe pas.
        """
        ...

    @abstractmethod
    async def get_items(self, kind: DocumentKind, document_id: int) -> list[Record]:
        """Récupère les lignes d'un document."""
        ...

    @abstractmethod
    async def get_versements(self, kind: DocumentKind, document_id: int) -> list[Record]:
        """Récupère les versements d'un document."""
        ...

    @abstractmethod
    async def get_next_code(
        self,
        kind: DocumentKind,
        doc_type: DocumentType,
        counterparty_id: int,
        year: int,
    ) -> int:
        """Retourne le prochain code libre du périmètre de numérotation.

        FR: Périmètre par tiers et par année pour un BL, par année pour une
            facture ; le connecteur reçoit le tiers dans les deux cas.
        EN: Per counterparty and year for a BL, per year for an invoice.
        """
        ...

    @abstractmethod
    async def update_document(
        self,
        kind: DocumentKind,
        document_id: int,
        *,
        description: str,
        issue_date: date,
        payment_method: str,
        remise: Decimal,
    ) -> None:
        """Met à jour les champs modifiables d'un document."""
        ...

    @abstractmethod
    async def update_items(
        self,
        kind: DocumentKind,
        document_id: int,
        items: list[Record],
        total: Decimal,
    ) -> None:
        """Remplace les lignes d'un document et son total brut.

        Args:
            items: Lignes ``{"ref_id", "quantity"}``.
            total: Nouveau total brut avant remise.
        """
        ...

    @abstractmethod
    async def save_versements(
        self,
        kind: DocumentKind,
        document_id: int,
        versements: list[Record],
        *,
        replace_all: bool = False,
    ) -> None:
        """Enregistre des versements.

        FR: Sans ``replace_all``, les versements transmis remplacent ceux du
            mois courant et s'ajoutent aux versements antérieurs déjà
            enregistrés ; avec ``replace_all``, ils remplacent l'ensemble.
        EN: Without ``replace_all``, the sent versements replace the
            current-month ones and are added to previously saved ones; with
            ``replace_all``, they replace the whole set.
        """
        ...

    @abstractmethod
    async def cancel_document(
        self, kind: DocumentKind, document_id: int, items: list[Record]
    ) -> None:
        """Annule un document et annule ses effets sur les stocks."""
        ...

    @abstractmethod
    async def finalize_document(self, kind: DocumentKind, document_id: int) -> None:
        """Finalise un document."""
        ...

    @abstractmethod
    async def delete_document(
        self, kind: DocumentKind, document_id: int, items: list[Record]
    ) -> None:
        """Supprime un document, ses lignes et ses versements."""
        ...

    # --- Catalogues ---

    @abstractmethod
    async def get_catalog(self, catalog: CatalogKind) -> list[Record]:
        """Récupère les matières premières ou les produits."""
        ...

    @abstractmethod
    async def get_product(self, product_id: int) -> Record:
        """Récupère un produit.

        Raises:
            StorageNotFoundError: Si le produit n'existe pas.
        """
        ...

    # --- Recettes et production ---

    @abstractmethod
    async def get_recipe(self, product_id: int) -> list[Record]:
        """Récupère la recette d'un produit."""
        ...

    @abstractmethod
    async def update_recipe(self, product_id: int, recipe: list[Record]) -> None:
        """Remplace la recette d'un produit."""
        ...

    @abstractmethod
    async def produce_product(self, product_id: int, quantity: int) -> None:
        """Produit ``quantity`` unités : consomme les matières, crédite le produit."""
        ...
