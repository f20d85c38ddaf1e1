"""Modèles de catalogue : matières premières, produits et recettes.

FR: Les entrées de catalogue portent le stock courant et le prix unitaire
    utilisés par les lignes de document et le calcul de production.
EN: Catalog entries carry the current stock and unit price used by
    document lines and the production calculator.
"""

from decimal import Decimal

from pydantic import BaseModel, Field


class CatalogEntry(BaseModel):
    """Matière première ou produit fini."""

    id: int = Field(..., description="Identifiant / Identifier")
    name: str = Field(..., description="Désignation / Name")
    quantity: Decimal = Field(
        default=Decimal("0"),
        description="Stock disponible / Stock on hand",
    )
    unit_price: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Prix unitaire / Unit price",
    )
    threshold: Decimal | None = Field(
        default=None,
        ge=0,
        description="Seuil d'alerte / Low-stock threshold",
    )


class RecipeLine(BaseModel):
    """Ligne de recette : quantité de matière première pour une unité produite."""

    raw_material_id: int = Field(..., description="Matière première / Raw material id")
    raw_material_name: str = Field(default="", description="Désignation")
    quantity: Decimal = Field(
        ...,
        ge=Decimal("0.01"),
        description="Quantité requise par unité / Required quantity per unit",
    )


class ProductionResult(BaseModel):
    """Résultat d'un calcul de production.

    FR: Le moteur ne calcule que les deltas ; la mise à jour effective des
        stocks est déléguée à la couche de persistance.
    EN: The engine only computes deltas; stock mutation is delegated.
    """

    product_id: int
    quantity: int = Field(..., gt=0)
    new_product_quantity: Decimal
    consumed_stock: dict[int, Decimal]
    cost: Decimal
