"""Registre des lignes de document.

FR: Fonctions pures sur une liste de lignes : ajout, modification,
    suppression et sous-total. La liste reçue n'est jamais modifiée ; une
    nouvelle liste est retournée. Au plus une ligne par référence.
EN: Pure functions over a list of line items. The input list is never
    mutated; a new list is returned. At most one line per reference.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal
from typing import Literal

from gescom.conf import get_decimal
from gescom.errors import (
    CatalogEntryNotFoundError,
    DuplicateItemError,
    ItemNotFoundError,
    NoAvailableCatalogEntryError,
    SaleQuantityError,
)
from gescom.models.catalog import CatalogEntry
from gescom.models.document import LineItem
from gescom.utils.money import ZERO, round2, to_decimal

ItemField = Literal["ref_id", "quantity"]


def _find_catalog_entry(catalog: Iterable[CatalogEntry], ref_id: int) -> CatalogEntry:
    for entry in catalog:
        if entry.id == ref_id:
            return entry
    msg = f"Entrée de catalogue introuvable : {ref_id}"
    raise CatalogEntryNotFoundError(msg)


def _index_of(items: Sequence[LineItem], ref_id: int) -> int:
    for index, item in enumerate(items):
        if item.ref_id == ref_id:
            return index
    msg = f"Ligne introuvable pour la référence {ref_id}"
    raise ItemNotFoundError(msg)


def new_item(catalog: Sequence[CatalogEntry], items: Sequence[LineItem]) -> LineItem:
    """Propose une ligne pour la première entrée du catalogue non référencée.

    Raises:
        NoAvailableCatalogEntryError: Si le catalogue est vide ou si toutes
            ses entrées sont déjà sur le document.
    """
    if not catalog:
        msg = "Catalogue vide : aucune entrée à ajouter"
        raise NoAvailableCatalogEntryError(msg)

    used = {item.ref_id for item in items}
    for entry in catalog:
        if entry.id not in used:
            return LineItem(
                ref_id=entry.id,
                name=entry.name,
                quantity=Decimal("1"),
                unit_price=entry.unit_price,
            )

    msg = "Toutes les entrées du catalogue sont déjà sur le document"
    raise NoAvailableCatalogEntryError(msg)


def add_item(catalog: Sequence[CatalogEntry], items: Sequence[LineItem]) -> list[LineItem]:
    """Ajoute une ligne (quantité 1) et retourne la nouvelle liste."""
    return [*items, new_item(catalog, items)]


def update_item(
    items: Sequence[LineItem],
    target_ref: int,
    field: ItemField,
    value: int | Decimal | float | str,
    catalog: Sequence[CatalogEntry] | None = None,
    *,
    min_quantity: Decimal | None = None,
) -> list[LineItem]:
    """Modifie une ligne et retourne la nouvelle liste.

    FR: Changement de référence : nom et prix unitaire sont relus depuis le
        catalogue, la quantité est conservée. Changement de quantité :
        plancher à ``min_quantity`` (1 par défaut pour achats et ventes).
    EN: Reference swap re-resolves name and unit price, keeping quantity.
        Quantity change is floored at ``min_quantity``.

    Raises:
        ItemNotFoundError: Si ``target_ref`` n'est sur aucune ligne.
        CatalogEntryNotFoundError: Si la nouvelle référence est inconnue.
        DuplicateItemError: Si la nouvelle référence est déjà utilisée.
        ValueError: Si le champ n'est pas modifiable.
    """
    index = _index_of(items, target_ref)
    current = items[index]

    if field == "ref_id":
        new_ref = int(value)
        if new_ref == target_ref:
            return list(items)
        if any(item.ref_id == new_ref for item in items):
            msg = f"La référence {new_ref} est déjà présente sur le document"
            raise DuplicateItemError(msg)
        entry = _find_catalog_entry(catalog or (), new_ref)
        updated = current.model_copy(
            update={
                "ref_id": entry.id,
                "name": entry.name,
                "unit_price": entry.unit_price,
            }
        )
    elif field == "quantity":
        if min_quantity is None:
            min_quantity = get_decimal("PURCHASE_MIN_QUANTITY")
        quantity = max(min_quantity, to_decimal(value))
        updated = current.model_copy(update={"quantity": quantity})
    else:
        msg = f"Champ de ligne non modifiable : {field!r}"
        raise ValueError(msg)

    result = list(items)
    result[index] = updated
    return result


def remove_item(items: Sequence[LineItem], target_ref: int) -> list[LineItem]:
    """Supprime la ligne de la référence donnée.

    Raises:
        ItemNotFoundError: Si aucune ligne ne porte cette référence.
    """
    index = _index_of(items, target_ref)
    return [item for i, item in enumerate(items) if i != index]


def subtotal(items: Iterable[LineItem]) -> Decimal:
    """Somme arrondie des montants de lignes."""
    return round2(sum((item.total_price for item in items), ZERO))


# --- Contrôle des quantités de vente ---


def max_sale_quantity(
    ref_id: int,
    committed_items: Iterable[LineItem],
    stock: Mapping[int, CatalogEntry],
) -> Decimal:
    """Quantité maximale vendable pour un produit sur ce document.

    FR: Quantité déjà enregistrée sur le document + stock disponible,
        puisque l'ancienne quantité est restituée au stock à l'enregistrement.
    EN: Quantity already saved on the document plus available stock.
    """
    old_quantity = next(
        (item.quantity for item in committed_items if item.ref_id == ref_id),
        ZERO,
    )
    entry = stock.get(ref_id)
    available = entry.quantity if entry is not None else ZERO
    return old_quantity + available


def validate_sale_quantities(
    items: Iterable[LineItem],
    committed_items: Sequence[LineItem],
    stock: Mapping[int, CatalogEntry],
) -> list[str]:
    """Valide les quantités d'une vente. Retourne la liste des erreurs."""
    errors: list[str] = []
    for item in items:
        if item.quantity <= 0:
            errors.append(f"{item.name} : la quantité doit être positive")
            continue
        maximum = max_sale_quantity(item.ref_id, committed_items, stock)
        if item.quantity > maximum:
            errors.append(
                f"{item.name} : quantité {item.quantity} supérieure au maximum "
                f"disponible {maximum}"
            )
    return errors


def check_sale_quantities(
    items: Iterable[LineItem],
    committed_items: Sequence[LineItem],
    stock: Mapping[int, CatalogEntry],
) -> None:
    """Lève SaleQuantityError si des quantités de vente sont invalides."""
    errors = validate_sale_quantities(items, committed_items, stock)
    if errors:
        msg = f"Quantités de vente invalides : {'; '.join(errors)}"
        raise SaleQuantityError(msg, errors=errors)
