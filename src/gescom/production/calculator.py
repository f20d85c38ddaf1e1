"""Calcul de production par recette.

FR: Fonctions pures sur (recette, stock de matières premières, quantité) :
    faisabilité, coût, quantité maximale productible, marge, et calcul des
    deltas de stock d'une production. La mise à jour effective des stocks
    est déléguée à la couche de persistance.
EN: Pure functions over (recipe, raw-material stock, quantity): feasibility,
    cost, maximum producible quantity, margin, and the stock deltas of a
    production run. Actual stock mutation is delegated to storage.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal

from gescom.errors import InsufficientStockError, InvalidQuantityError
from gescom.models.catalog import CatalogEntry, ProductionResult, RecipeLine
from gescom.utils.money import HUNDRED, ZERO, round2

Stock = Mapping[int, CatalogEntry]


def stock_index(entries: Iterable[CatalogEntry]) -> dict[int, CatalogEntry]:
    """Indexe un catalogue de matières premières par identifiant."""
    return {entry.id: entry for entry in entries}


def _available(stock: Stock, raw_material_id: int) -> Decimal:
    entry = stock.get(raw_material_id)
    return entry.quantity if entry is not None else ZERO


def can_produce(recipe: Sequence[RecipeLine], stock: Stock, quantity: int | Decimal) -> bool:
    """Vérifie que chaque matière première couvre ``requis × quantité``.

    Une matière absente du stock compte pour zéro.
    """
    return all(
        _available(stock, line.raw_material_id) >= line.quantity * quantity
        for line in recipe
    )


def production_cost(
    recipe: Sequence[RecipeLine],
    stock: Stock,
    quantity: int | Decimal = 1,
) -> Decimal:
    """Coût matière de ``quantité`` unités, arrondi au centime.

    Les matières absentes du stock sont ignorées.
    """
    total = ZERO
    for line in recipe:
        entry = stock.get(line.raw_material_id)
        if entry is not None:
            total += entry.unit_price * line.quantity * quantity
    return round2(total)


def max_producible(recipe: Sequence[RecipeLine], stock: Stock) -> int:
    """Quantité maximale productible avec le stock courant (0 si recette vide)."""
    if not recipe:
        return 0
    return max(
        0,
        min(
            int(_available(stock, line.raw_material_id) // line.quantity)
            for line in recipe
        ),
    )


def profit_margin(
    unit_price: Decimal,
    cost_per_unit: Decimal,
    recipe: Sequence[RecipeLine] | None = None,
) -> Decimal:
    """Marge en % du prix de vente.

    Retourne 0 si le prix unitaire est nul ou si la recette fournie est vide.
    """
    if unit_price == 0 or (recipe is not None and not recipe):
        return ZERO
    return (unit_price - cost_per_unit) / unit_price * HUNDRED


def expected_profit(unit_price: Decimal, cost_per_unit: Decimal, quantity: int | Decimal) -> Decimal:
    """Bénéfice attendu sur ``quantité`` unités."""
    return round2((unit_price - cost_per_unit) * quantity)


def produce(
    product: CatalogEntry,
    recipe: Sequence[RecipeLine],
    stock: Stock,
    quantity: int,
) -> ProductionResult:
    """Calcule les deltas d'une production.

    FR: Augmente le stock produit de ``quantité`` et consomme
        ``requis × quantité`` de chaque matière première de la recette.
    EN: Increases product stock by ``quantity`` and consumes
        ``required × quantity`` of each raw material.

    Args:
        product: Le produit fini.
        recipe: La recette du produit.
        stock: Stock des matières premières, indexé par identifiant.
        quantity: Nombre entier d'unités à produire.

    Returns:
        Nouvelle quantité du produit, consommations et coût.

    Raises:
        InvalidQuantityError: Si la quantité n'est pas un entier positif
            ou si la recette est vide.
        InsufficientStockError: Si une matière première ne suffit pas.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        msg = f"Quantité de production invalide : {quantity!r} (entier positif attendu)"
        raise InvalidQuantityError(msg)
    if not recipe:
        msg = f"Le produit {product.name} n'a pas de recette"
        raise InvalidQuantityError(msg)

    for line in recipe:
        required = line.quantity * quantity
        available = _available(stock, line.raw_material_id)
        if available < required:
            msg = (
                f"Stock insuffisant pour {line.raw_material_name or line.raw_material_id} : "
                f"{required} requis, {available} disponible"
            )
            raise InsufficientStockError(msg, expected=required, actual=available)

    consumed: dict[int, Decimal] = {}
    for line in recipe:
        consumed[line.raw_material_id] = (
            consumed.get(line.raw_material_id, ZERO) + line.quantity * quantity
        )

    return ProductionResult(
        product_id=product.id,
        quantity=quantity,
        new_product_quantity=product.quantity + quantity,
        consumed_stock=consumed,
        cost=production_cost(recipe, stock, quantity),
    )
