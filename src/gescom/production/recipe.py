"""Édition des recettes (copie de travail).

Mêmes règles que les lignes de document : au plus une ligne par matière
première, liste d'entrée jamais modifiée.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Literal

from gescom.conf import get_decimal
from gescom.errors import (
    CatalogEntryNotFoundError,
    DuplicateItemError,
    ItemNotFoundError,
    NoAvailableCatalogEntryError,
)
from gescom.models.catalog import CatalogEntry, RecipeLine
from gescom.utils.money import round2, to_decimal


def _index_of(recipe: Sequence[RecipeLine], raw_material_id: int) -> int:
    for index, line in enumerate(recipe):
        if line.raw_material_id == raw_material_id:
            return index
    msg = f"Matière première {raw_material_id} absente de la recette"
    raise ItemNotFoundError(msg)


def add_recipe_line(
    raw_materials: Sequence[CatalogEntry],
    recipe: Sequence[RecipeLine],
) -> list[RecipeLine]:
    """Ajoute la première matière première non utilisée (quantité 1)."""
    if not raw_materials:
        msg = "Aucune matière première disponible"
        raise NoAvailableCatalogEntryError(msg)

    used = {line.raw_material_id for line in recipe}
    for entry in raw_materials:
        if entry.id not in used:
            line = RecipeLine(
                raw_material_id=entry.id,
                raw_material_name=entry.name,
                quantity=Decimal("1"),
            )
            return [*recipe, line]

    msg = "Toutes les matières premières sont déjà dans la recette"
    raise NoAvailableCatalogEntryError(msg)


def update_recipe_line(
    recipe: Sequence[RecipeLine],
    raw_material_id: int,
    field: Literal["raw_material_id", "quantity"],
    value: int | Decimal | float | str,
    raw_materials: Sequence[CatalogEntry] | None = None,
) -> list[RecipeLine]:
    """Modifie une ligne de recette.

    La quantité est arrondie au centième, avec un plancher à
    ``RECIPE_MIN_QUANTITY``.
    """
    index = _index_of(recipe, raw_material_id)
    current = recipe[index]

    if field == "raw_material_id":
        new_id = int(value)
        if new_id == raw_material_id:
            return list(recipe)
        if any(line.raw_material_id == new_id for line in recipe):
            msg = f"La matière première {new_id} est déjà dans la recette"
            raise DuplicateItemError(msg)
        entry = next((e for e in raw_materials or () if e.id == new_id), None)
        if entry is None:
            msg = f"Matière première introuvable : {new_id}"
            raise CatalogEntryNotFoundError(msg)
        updated = current.model_copy(
            update={"raw_material_id": entry.id, "raw_material_name": entry.name}
        )
    elif field == "quantity":
        quantity = max(get_decimal("RECIPE_MIN_QUANTITY"), round2(to_decimal(value)))
        updated = current.model_copy(update={"quantity": quantity})
    else:
        msg = f"Champ de recette non modifiable : {field!r}"
        raise ValueError(msg)

    result = list(recipe)
    result[index] = updated
    return result


def remove_recipe_line(recipe: Sequence[RecipeLine], raw_material_id: int) -> list[RecipeLine]:
    """Retire une matière première de la recette."""
    index = _index_of(recipe, raw_material_id)
    return [line for i, line in enumerate(recipe) if i != index]
