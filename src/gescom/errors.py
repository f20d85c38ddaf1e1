"""Hiérarchie d'exceptions du moteur de gestion commerciale.

FR: Exceptions typées pour les violations d'invariants (validation), l'ordre
    de suppression des documents, les échecs de persistance et les
    références introuvables. Chaque exception porte un code discriminant
    et, si pertinent, la borne attendue et la valeur reçue.
EN: Typed exceptions for invariant violations, delete ordering,
    persistence failures and missing references.
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum


class ErrorCode(StrEnum):
    """Code discriminant d'une erreur du moteur."""

    # --- Base ---
    ENGINE = "engine"

    # --- Validation ---
    VALIDATION = "validation"
    EXCEEDS_TOTAL = "exceeds_total"
    NON_POSITIVE_AMOUNT = "non_positive_amount"
    LOCKED = "locked"
    OUTSIDE_CURRENT_MONTH = "outside_current_month"
    REMISE_OUT_OF_RANGE = "remise_out_of_range"
    REMISE_TOO_HIGH = "remise_too_high"
    BELOW_PAYMENTS = "below_payments"
    NO_AVAILABLE_CATALOG_ENTRY = "no_available_catalog_entry"
    DUPLICATE_ITEM = "duplicate_item"
    INSUFFICIENT_STOCK = "insufficient_stock"
    INVALID_QUANTITY = "invalid_quantity"
    NOTHING_TO_CLEAR = "nothing_to_clear"
    INVALID_TRANSITION = "invalid_transition"
    CONFIRMATION_REQUIRED = "confirmation_required"
    SALE_QUANTITY = "sale_quantity"
    REQUIRED_FIELD = "required_field"
    INVALID_AMOUNT = "invalid_amount"

    # --- Ordre ---
    ORDERING = "ordering"
    NOT_LATEST_DOCUMENT = "not_latest_document"

    # --- Persistance ---
    PERSISTENCE = "persistence"

    # --- Introuvable ---
    NOT_FOUND = "not_found"


class GescomError(Exception):
    """Erreur de base du moteur.

    FR: Classe parente de toutes les exceptions du moteur. Le contexte
        (borne attendue, valeur reçue) permet de construire un message
        utilisateur sans réanalyser le texte.
    EN: Base class for all engine exceptions.
    """

    code: ErrorCode = ErrorCode.ENGINE

    def __init__(
        self,
        message: str,
        *,
        expected: Decimal | None = None,
        actual: Decimal | None = None,
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(GescomError):
    """Invariant violé avant tout appel externe.

    FR: Toujours récupérable localement : l'opération est sans effet.
    EN: Always locally recoverable: the operation is a no-op.
    """

    code = ErrorCode.VALIDATION


class ExceedsTotalError(ValidationError):
    """La somme des versements dépasserait le total après remise."""

    code = ErrorCode.EXCEEDS_TOTAL


class NonPositiveAmountError(ValidationError):
    """Montant de versement nul ou négatif."""

    code = ErrorCode.NON_POSITIVE_AMOUNT


class VersementLockedError(ValidationError):
    """Versement hors du mois courant, donc en lecture seule."""

    code = ErrorCode.LOCKED


class OutsideCurrentMonthError(ValidationError):
    """Nouvelle date de versement hors du mois courant."""

    code = ErrorCode.OUTSIDE_CURRENT_MONTH


class RemiseOutOfRangeError(ValidationError):
    """Remise hors de l'intervalle 0–100."""

    code = ErrorCode.REMISE_OUT_OF_RANGE


class RemiseTooHighError(ValidationError):
    """Remise au-delà du maximum effectif (paiements reçus, plafond BL)."""

    code = ErrorCode.REMISE_TOO_HIGH


class BelowPaymentsError(ValidationError):
    """Le total après remise deviendrait inférieur aux paiements reçus."""

    code = ErrorCode.BELOW_PAYMENTS


class NoAvailableCatalogEntryError(ValidationError):
    """Catalogue vide ou entièrement référencé."""

    code = ErrorCode.NO_AVAILABLE_CATALOG_ENTRY


class DuplicateItemError(ValidationError):
    """Référence déjà présente sur une autre ligne du document."""

    code = ErrorCode.DUPLICATE_ITEM


class InsufficientStockError(ValidationError):
    """Stock de matière première insuffisant pour la production."""

    code = ErrorCode.INSUFFICIENT_STOCK


class InvalidQuantityError(ValidationError):
    """Quantité de production invalide."""

    code = ErrorCode.INVALID_QUANTITY


class NothingToClearError(ValidationError):
    """Aucun solde restant à régler."""

    code = ErrorCode.NOTHING_TO_CLEAR


class TransitionError(ValidationError):
    """Action non autorisée dans l'état courant du document."""

    code = ErrorCode.INVALID_TRANSITION


class ConfirmationRequiredError(ValidationError):
    """Action destructive sans confirmation explicite."""

    code = ErrorCode.CONFIRMATION_REQUIRED


class SaleQuantityError(ValidationError):
    """Quantités de vente incompatibles avec le stock disponible."""

    code = ErrorCode.SALE_QUANTITY

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors: list[str] = errors or []


class RequiredFieldError(ValidationError):
    """Champ obligatoire vide (mode de paiement)."""

    code = ErrorCode.REQUIRED_FIELD


class InvalidAmountError(ValidationError):
    """Valeur numérique illisible ou non finie (NaN, infini)."""

    code = ErrorCode.INVALID_AMOUNT


# ---------------------------------------------------------------------------
# Ordre de suppression
# ---------------------------------------------------------------------------


class OrderingError(GescomError):
    """Suppression demandée sur un document qui n'est pas le dernier émis."""

    code = ErrorCode.ORDERING


class NotLatestDocumentError(OrderingError):
    """Le code du document n'est pas ``next_code - 1``."""

    code = ErrorCode.NOT_LATEST_DOCUMENT


# ---------------------------------------------------------------------------
# Persistance
# ---------------------------------------------------------------------------


class PersistenceError(GescomError):
    """Échec d'un appel au collaborateur de persistance.

    FR: L'état local reste le dernier instantané valide.
    EN: Local state is left as the last valid snapshot.
    """

    code = ErrorCode.PERSISTENCE


# ---------------------------------------------------------------------------
# Introuvable
# ---------------------------------------------------------------------------


class NotFoundError(GescomError):
    """Entrée de catalogue, document, ligne ou versement introuvable."""

    code = ErrorCode.NOT_FOUND


class CatalogEntryNotFoundError(NotFoundError):
    """Entrée de catalogue introuvable."""


class ItemNotFoundError(NotFoundError):
    """Ligne de document introuvable."""


class VersementNotFoundError(NotFoundError):
    """Versement introuvable."""


class DocumentNotFoundError(NotFoundError):
    """Document introuvable."""
