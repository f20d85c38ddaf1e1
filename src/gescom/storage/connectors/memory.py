"""Connecteur de persistance en mémoire pour les tests et le développement.

FR: Stocke documents, lignes, versements, catalogues et recettes en mémoire,
    applique les effets sur les stocks (réception d'achat, sortie de vente,
    annulation, production) et attribue les codes séquentiels par périmètre
    de numérotation. Permet d'injecter des pannes (``fail_on``).
EN: Stores documents, lines, versements, catalogs and recipes in memory,
    applies stock effects and allocates sequential codes per numbering
    scope. Supports failure injection (``fail_on``).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from gescom.models.catalog import CatalogEntry, RecipeLine
from gescom.models.document import Document, LineItem
from gescom.models.enums import (
    CatalogKind,
    DocumentKind,
    DocumentStatus,
    DocumentType,
)
from gescom.models.versement import Versement
from gescom.storage.base import BaseStorage, Record
from gescom.storage.errors import (
    StorageConnectionError,
    StorageError,
    StorageNotFoundError,
)

_CATALOG_OF: dict[DocumentKind, CatalogKind] = {
    DocumentKind.PURCHASE: CatalogKind.RAW_MATERIAL,
    DocumentKind.SALE: CatalogKind.PRODUCT,
}

# Sens du mouvement de stock à l'enregistrement d'une ligne
_STOCK_SIGN: dict[DocumentKind, int] = {
    DocumentKind.PURCHASE: 1,
    DocumentKind.SALE: -1,
}


@dataclass
class _StoredDocument:
    """Document stocké en mémoire avec ses lignes et versements."""

    record: Record
    items: list[Record] = field(default_factory=list)
    versements: list[Record] = field(default_factory=list)


def numbering_scope(
    kind: DocumentKind,
    doc_type: DocumentType,
    counterparty_id: int,
    year: int,
) -> tuple[object, ...]:
    """Périmètre de numérotation : par tiers pour un BL, global pour une facture."""
    if doc_type == DocumentType.BL:
        return (kind, doc_type, counterparty_id, year)
    return (kind, doc_type, year)


class MemoryStorage(BaseStorage):
    """Connecteur de persistance en mémoire.

    FR: Implémente l'interface BaseStorage complète. Les lectures retournent
        des copies des enregistrements pour que l'appelant ne puisse pas
        modifier l'état stocké.
    EN: Implements the full BaseStorage interface. Reads return copies of
        the records.
    """

    def __init__(self, today: date | None = None) -> None:
        self.today = today
        self.fail_on: set[str] = set()
        self._documents: dict[tuple[DocumentKind, int], _StoredDocument] = {}
        self._catalogs: dict[CatalogKind, dict[int, Record]] = {
            CatalogKind.RAW_MATERIAL: {},
            CatalogKind.PRODUCT: {},
        }
        self._recipes: dict[int, list[Record]] = {}

    # --- Outils internes ---

    def _check_failure(self, operation: str) -> None:
        if operation in self.fail_on:
            msg = f"Stockage indisponible pour {operation}"
            raise StorageConnectionError(msg)

    def _current_date(self) -> date:
        return self.today if self.today is not None else date.today()

    def _get_stored(self, kind: DocumentKind, document_id: int) -> _StoredDocument:
        stored = self._documents.get((kind, document_id))
        if stored is None:
            msg = f"Document introuvable : {kind.value} {document_id}"
            raise StorageNotFoundError(msg)
        return stored

    def _catalog_entry(self, catalog: CatalogKind, entry_id: int) -> Record:
        entry = self._catalogs[catalog].get(entry_id)
        if entry is None:
            msg = f"Entrée de catalogue introuvable : {catalog.value} {entry_id}"
            raise StorageNotFoundError(msg)
        return entry

    def _move_stock(
        self, kind: DocumentKind, items: Iterable[Record], direction: int
    ) -> None:
        """Applique le mouvement de stock de lignes (direction +1 ou -1)."""
        catalog = _CATALOG_OF[kind]
        sign = _STOCK_SIGN[kind] * direction
        for item in items:
            entry = self._catalog_entry(catalog, int(item["ref_id"]))
            entry["quantity"] = entry["quantity"] + sign * Decimal(str(item["quantity"]))

    # --- Documents ---

    async def get_document(self, kind: DocumentKind, document_id: int) -> Record:
        """Retourne une copie du document."""
        self._check_failure("get_document")
        return dict(self._get_stored(kind, document_id).record)

    async def get_items(self, kind: DocumentKind, document_id: int) -> list[Record]:
        """Retourne les lignes avec leur prix unitaire."""
        self._check_failure("get_items")
        return [dict(item) for item in self._get_stored(kind, document_id).items]

    async def get_versements(self, kind: DocumentKind, document_id: int) -> list[Record]:
        """Retourne les versements."""
        self._check_failure("get_versements")
        return [dict(v) for v in self._get_stored(kind, document_id).versements]

    async def get_next_code(
        self,
        kind: DocumentKind,
        doc_type: DocumentType,
        counterparty_id: int,
        year: int,
    ) -> int:
        """Prochain code libre du périmètre de numérotation."""
        self._check_failure("get_next_code")
        scope = numbering_scope(kind, doc_type, counterparty_id, year)
        codes = [
            stored.record["code"]
            for (doc_kind, _), stored in self._documents.items()
            if doc_kind == kind
            and numbering_scope(
                kind,
                DocumentType(stored.record["doc_type"]),
                stored.record["counterparty_id"],
                stored.record["issue_date"].year,
            )
            == scope
        ]
        return max(codes, default=0) + 1

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
        """Met à jour les champs modifiables."""
        self._check_failure("update_document")
        stored = self._get_stored(kind, document_id)
        stored.record.update(
            description=description,
            issue_date=issue_date,
            payment_method=payment_method,
            remise=remise,
        )

    async def update_items(
        self,
        kind: DocumentKind,
        document_id: int,
        items: list[Record],
        total: Decimal,
    ) -> None:
        """Remplace les lignes et applique le delta de stock."""
        self._check_failure("update_items")
        stored = self._get_stored(kind, document_id)
        catalog = _CATALOG_OF[kind]

        previous_prices = {int(i["ref_id"]): i["unit_price"] for i in stored.items}
        new_items: list[Record] = []
        for item in items:
            ref_id = int(item["ref_id"])
            entry = self._catalog_entry(catalog, ref_id)
            new_items.append(
                {
                    "ref_id": ref_id,
                    "quantity": Decimal(str(item["quantity"])),
                    "unit_price": previous_prices.get(ref_id, entry["unit_price"]),
                }
            )

        self._move_stock(kind, stored.items, -1)
        self._move_stock(kind, new_items, 1)
        stored.items = new_items
        stored.record["total"] = total

    async def save_versements(
        self,
        kind: DocumentKind,
        document_id: int,
        versements: list[Record],
        *,
        replace_all: bool = False,
    ) -> None:
        """Enregistre les versements puis renumérote par date."""
        self._check_failure("save_versements")
        stored = self._get_stored(kind, document_id)
        today = self._current_date()

        if replace_all:
            kept: list[Record] = []
        else:
            kept = [
                v
                for v in stored.versements
                if (v["payment_date"].year, v["payment_date"].month)
                != (today.year, today.month)
            ]

        incoming = [
            {
                "amount": Decimal(str(v["amount"])),
                "payment_date": v["payment_date"],
            }
            for v in versements
        ]
        merged = sorted([*kept, *incoming], key=lambda v: v["payment_date"])
        stored.versements = [
            {"number": index, "amount": v["amount"], "payment_date": v["payment_date"]}
            for index, v in enumerate(merged, start=1)
        ]

    async def cancel_document(
        self, kind: DocumentKind, document_id: int, items: list[Record]
    ) -> None:
        """Annule le document et annule ses mouvements de stock."""
        self._check_failure("cancel_document")
        stored = self._get_stored(kind, document_id)
        if stored.record["status"] == DocumentStatus.CANCELLED:
            msg = f"Document déjà annulé : {kind.value} {document_id}"
            raise StorageError(msg)
        self._move_stock(kind, items, -1)
        stored.record["status"] = DocumentStatus.CANCELLED

    async def finalize_document(self, kind: DocumentKind, document_id: int) -> None:
        """Marque le document comme finalisé."""
        self._check_failure("finalize_document")
        self._get_stored(kind, document_id).record["finalized"] = True

    async def delete_document(
        self, kind: DocumentKind, document_id: int, items: list[Record]
    ) -> None:
        """Supprime le document ; annule les stocks s'il était encore approuvé."""
        self._check_failure("delete_document")
        stored = self._get_stored(kind, document_id)
        if stored.record["status"] == DocumentStatus.APPROVED:
            self._move_stock(kind, items, -1)
        del self._documents[(kind, document_id)]

    # --- Catalogues ---

    async def get_catalog(self, catalog: CatalogKind) -> list[Record]:
        """Retourne les entrées du catalogue dans l'ordre d'insertion."""
        self._check_failure("get_catalog")
        return [dict(entry) for entry in self._catalogs[catalog].values()]

    async def get_product(self, product_id: int) -> Record:
        """Retourne un produit."""
        self._check_failure("get_product")
        return dict(self._catalog_entry(CatalogKind.PRODUCT, product_id))

    # --- Recettes et production ---

    async def get_recipe(self, product_id: int) -> list[Record]:
        """Retourne la recette, avec le nom des matières premières."""
        self._check_failure("get_recipe")
        self._catalog_entry(CatalogKind.PRODUCT, product_id)
        raws = self._catalogs[CatalogKind.RAW_MATERIAL]
        return [
            {
                **line,
                "raw_material_name": raws.get(line["raw_material_id"], {}).get("name", ""),
            }
            for line in self._recipes.get(product_id, [])
        ]

    async def update_recipe(self, product_id: int, recipe: list[Record]) -> None:
        """Remplace la recette."""
        self._check_failure("update_recipe")
        self._catalog_entry(CatalogKind.PRODUCT, product_id)
        self._recipes[product_id] = [
            {
                "raw_material_id": int(line["raw_material_id"]),
                "quantity": Decimal(str(line["quantity"])),
            }
            for line in recipe
        ]

    async def produce_product(self, product_id: int, quantity: int) -> None:
        """Consomme les matières de la recette et crédite le produit."""
        self._check_failure("produce_product")
        product = self._catalog_entry(CatalogKind.PRODUCT, product_id)
        recipe = self._recipes.get(product_id, [])
        if not recipe:
            msg = f"Aucune recette pour le produit {product_id}"
            raise StorageError(msg)

        for line in recipe:
            raw = self._catalog_entry(CatalogKind.RAW_MATERIAL, line["raw_material_id"])
            if raw["quantity"] < line["quantity"] * quantity:
                msg = f"Stock insuffisant pour la matière première {line['raw_material_id']}"
                raise StorageError(msg)

        for line in recipe:
            raw = self._catalogs[CatalogKind.RAW_MATERIAL][line["raw_material_id"]]
            raw["quantity"] = raw["quantity"] - line["quantity"] * quantity
        product["quantity"] = product["quantity"] + quantity

    # --- Méthodes utilitaires (propres au connecteur mémoire) ---

    def add_catalog_entry(self, catalog: CatalogKind, entry: CatalogEntry) -> None:
        """Ajoute une matière première ou un produit."""
        self._catalogs[catalog][entry.id] = entry.model_dump()

    def set_recipe(self, product_id: int, recipe: Iterable[RecipeLine]) -> None:
        """Définit la recette d'un produit sans passer par l'API asynchrone."""
        self._recipes[product_id] = [
            {"raw_material_id": line.raw_material_id, "quantity": line.quantity}
            for line in recipe
        ]

    def add_document(
        self,
        document: Document,
        items: Iterable[LineItem] = (),
        versements: Iterable[Versement] = (),
        *,
        apply_stock: bool = True,
    ) -> int:
        """Enregistre un document existant (saisie de commande hors moteur).

        Returns:
            L'identifiant du document.
        """
        item_records = [
            {"ref_id": i.ref_id, "quantity": i.quantity, "unit_price": i.unit_price}
            for i in items
        ]
        stored = _StoredDocument(
            record=document.model_dump(),
            items=item_records,
            versements=[v.model_dump() for v in versements],
        )
        self._documents[(document.kind, document.id)] = stored
        if apply_stock and document.status == DocumentStatus.APPROVED:
            self._move_stock(document.kind, item_records, 1)
        return document.id

    def has_document(self, kind: DocumentKind, document_id: int) -> bool:
        """Vérifie la présence d'un document."""
        return (kind, document_id) in self._documents

    def stock_of(self, catalog: CatalogKind, entry_id: int) -> Decimal:
        """Stock courant d'une entrée de catalogue."""
        return self._catalog_entry(catalog, entry_id)["quantity"]
