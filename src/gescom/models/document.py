"""Modèles principaux pour les documents commerciaux.

FR: Modèles Pydantic pour les documents d'achat et de vente (BL ou facture)
    et leurs lignes. Les enregistrements bruts renvoyés par la couche de
    persistance sont revalidés ici via ``model_validate``.
EN: Pydantic models for purchase and sale documents (BL or invoice) and
    their lines. Raw records returned by storage are re-validated here.
"""

from datetime import date
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, Field, computed_field

from gescom.models.enums import DocumentKind, DocumentStatus, DocumentType


class LineItem(BaseModel):
    """Ligne de document.

    FR: Référence une matière première (achat) ou un produit (vente).
        Le prix unitaire est celui du catalogue à la création de la ligne.
    EN: References a raw material (purchase) or a product (sale). The unit
        price is the catalog price when the line was created.
    """

    ref_id: int = Field(
        ...,
        validation_alias=AliasChoices("ref_id", "r_id", "p_id"),
        description="Identifiant matière première ou produit / Catalog reference",
    )
    name: str = Field(default="", description="Désignation / Display name")
    quantity: Decimal = Field(..., gt=0, description="Quantité / Quantity")
    unit_price: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Prix unitaire / Unit price",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_price(self) -> Decimal:
        """Montant de la ligne / Line total."""
        return self.quantity * self.unit_price


class Document(BaseModel):
    """Document commercial (achat ou vente).

    FR: ``total`` est la somme brute des lignes avant remise. Le code est
        séquentiel dans son périmètre de numérotation : par tiers et par
        année pour un BL, par année pour une facture.
    EN: ``total`` is the raw sum of lines before discount. The code is
        sequential within its numbering scope.
    """

    # --- Identification ---
    id: int = Field(..., description="Identifiant / Identifier")
    kind: DocumentKind = Field(..., description="Achat ou vente / Purchase or sale")
    doc_type: DocumentType = Field(..., description="BL ou facture / BL or invoice")
    code: int = Field(..., gt=0, description="Code séquentiel / Sequential code")
    issue_date: date = Field(
        ...,
        validation_alias=AliasChoices("issue_date", "date"),
        description="Date d'émission / Issue date",
    )

    # --- Tiers ---
    counterparty_id: int = Field(
        ...,
        validation_alias=AliasChoices("counterparty_id", "v_id", "c_id"),
        description="Fournisseur ou client / Vendor or client id",
    )
    counterparty_name: str = Field(
        default="",
        validation_alias=AliasChoices("counterparty_name", "vendor", "client"),
        description="Nom du tiers / Counterparty display name",
    )

    # --- Champs modifiables ---
    description: str = Field(default="", description="Description libre")
    payment_method: str = Field(default="", description="Mode de paiement")
    remise: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        le=100,
        description="Remise en % / Discount percentage",
    )

    # --- Montants et état ---
    total: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Total brut avant remise / Raw total before discount",
    )
    status: DocumentStatus = Field(
        default=DocumentStatus.APPROVED,
        description="Statut / Status",
    )
    finalized: bool = Field(
        default=False,
        description="Finalisé (irréversible) / Finalized (one-way)",
    )

    @property
    def year(self) -> int:
        """Année de numérotation / Numbering year."""
        return self.issue_date.year
