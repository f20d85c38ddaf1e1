"""Session de production d'un produit fini.

FR: Charge un produit, sa recette et le stock de matières premières,
    expose les valeurs calculées (coût, marge, quantité maximale), permet
    d'éditer la recette en copie de travail et lance la production.
EN: Loads a product, its recipe and raw-material stock, exposes computed
    values, edits the recipe as a working copy and runs production.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import Literal

from gescom.errors import TransitionError
from gescom.models.catalog import CatalogEntry, ProductionResult, RecipeLine
from gescom.models.enums import CatalogKind
from gescom.production import calculator
from gescom.production import recipe as recipe_ledger
from gescom.session.base import call_storage, validate_record, validate_records
from gescom.storage.base import BaseStorage

logger = logging.getLogger(__name__)


class ProductionSession:
    """Production par recette d'un produit."""

    def __init__(
        self,
        storage: BaseStorage,
        product: CatalogEntry,
        recipe: Sequence[RecipeLine],
        raw_materials: Sequence[CatalogEntry],
    ) -> None:
        self.storage = storage
        self.product = product
        self.raw_materials: list[CatalogEntry] = list(raw_materials)
        self.committed_recipe: list[RecipeLine] = list(recipe)
        self.recipe: list[RecipeLine] = list(recipe)
        self.editing_recipe = False

    @classmethod
    async def load(cls, storage: BaseStorage, product_id: int) -> ProductionSession:
        """Charge le produit, sa recette et les matières premières."""
        product = validate_record(
            CatalogEntry,
            await call_storage("get_product", storage.get_product(product_id)),
        )
        recipe = validate_records(
            RecipeLine,
            await call_storage("get_recipe", storage.get_recipe(product_id)),
        )
        raw_materials = validate_records(
            CatalogEntry,
            await call_storage("get_catalog", storage.get_catalog(CatalogKind.RAW_MATERIAL)),
        )
        return cls(storage, product, recipe, raw_materials)

    # --- Valeurs calculées sur la recette persistée ---

    @property
    def stock(self) -> dict[int, CatalogEntry]:
        return calculator.stock_index(self.raw_materials)

    @property
    def cost_per_unit(self) -> Decimal:
        """Coût matière d'une unité."""
        return calculator.production_cost(self.committed_recipe, self.stock)

    @property
    def profit_margin(self) -> Decimal:
        """Marge en % du prix de vente."""
        return calculator.profit_margin(
            self.product.unit_price, self.cost_per_unit, self.committed_recipe
        )

    @property
    def max_producible(self) -> int:
        return calculator.max_producible(self.committed_recipe, self.stock)

    def can_produce(self, quantity: int) -> bool:
        return calculator.can_produce(self.committed_recipe, self.stock, quantity)

    def production_cost(self, quantity: int) -> Decimal:
        return calculator.production_cost(self.committed_recipe, self.stock, quantity)

    def expected_profit(self, quantity: int) -> Decimal:
        """Bénéfice attendu sur ``quantité`` unités vendues au prix catalogue."""
        return calculator.expected_profit(self.product.unit_price, self.cost_per_unit, quantity)

    # --- Édition de la recette ---

    def _require_recipe_edit(self) -> None:
        if not self.editing_recipe:
            msg = "Aucune modification de recette en cours"
            raise TransitionError(msg)

    def begin_recipe_edit(self) -> None:
        self.recipe = list(self.committed_recipe)
        self.editing_recipe = True

    def add_recipe_line(self) -> list[RecipeLine]:
        self._require_recipe_edit()
        self.recipe = recipe_ledger.add_recipe_line(self.raw_materials, self.recipe)
        return self.recipe

    def update_recipe_line(
        self,
        raw_material_id: int,
        field: Literal["raw_material_id", "quantity"],
        value: int | Decimal | float | str,
    ) -> list[RecipeLine]:
        self._require_recipe_edit()
        self.recipe = recipe_ledger.update_recipe_line(
            self.recipe, raw_material_id, field, value, self.raw_materials
        )
        return self.recipe

    def remove_recipe_line(self, raw_material_id: int) -> list[RecipeLine]:
        self._require_recipe_edit()
        self.recipe = recipe_ledger.remove_recipe_line(self.recipe, raw_material_id)
        return self.recipe

    def revert_recipe(self) -> None:
        self.recipe = list(self.committed_recipe)
        self.editing_recipe = False

    async def save_recipe(self) -> list[RecipeLine]:
        """Enregistre la recette de travail."""
        self._require_recipe_edit()
        records = [
            {"raw_material_id": line.raw_material_id, "quantity": line.quantity}
            for line in self.recipe
        ]
        await call_storage(
            "update_recipe", self.storage.update_recipe(self.product.id, records)
        )
        self.committed_recipe = list(self.recipe)
        self.editing_recipe = False
        logger.info(
            "Recette du produit %s enregistrée : %d matière(s) première(s)",
            self.product.name,
            len(self.recipe),
        )
        return self.committed_recipe

    # --- Production ---

    async def produce(self, quantity: int) -> ProductionResult:
        """Produit ``quantité`` unités selon la recette persistée.

        Raises:
            InvalidQuantityError: Si la quantité n'est pas un entier positif.
            InsufficientStockError: Si une matière première ne suffit pas.
            PersistenceError: Si la production échoue côté persistance.
        """
        result = calculator.produce(self.product, self.committed_recipe, self.stock, quantity)
        await call_storage(
            "produce_product", self.storage.produce_product(self.product.id, quantity)
        )
        await self.refresh()
        logger.info(
            "Production de %d %s (coût %s)", quantity, self.product.name, result.cost
        )
        return result

    async def refresh(self) -> None:
        """Relit le produit et les stocks de matières premières."""
        self.product = validate_record(
            CatalogEntry,
            await call_storage("get_product", self.storage.get_product(self.product.id)),
        )
        self.raw_materials = validate_records(
            CatalogEntry,
            await call_storage(
                "get_catalog", self.storage.get_catalog(CatalogKind.RAW_MATERIAL)
            ),
        )
