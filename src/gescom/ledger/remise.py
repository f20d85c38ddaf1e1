"""Calcul et validation de la remise.

FR: Deux bornes supérieures s'appliquent à la remise d'un document : celle
    qui garantit que le total après remise reste supérieur ou égal aux
    paiements déjà reçus, et le plafond propre au sous-type (50 % pour un
    BL). Elles sont fusionnées en un maximum effectif unique, appliqué à
    chaque point d'entrée qui fixe une remise.
EN: Two upper bounds apply to a document's discount: the payment-coverage
    bound and the sub-type cap (50% for BL). They are merged into a single
    effective maximum applied at every remise-setting entry point.
"""

from __future__ import annotations

from decimal import Decimal

from gescom.conf import get_decimal
from gescom.errors import BelowPaymentsError, RemiseOutOfRangeError, RemiseTooHighError
from gescom.models.enums import DocumentType
from gescom.utils.money import HUNDRED, ZERO, round2, to_decimal


def max_allowed_remise(document_total: Decimal, total_paid: Decimal) -> Decimal:
    """Remise maximale compatible avec les paiements reçus (0–100).

    Un total nul n'impose aucune borne (100).
    """
    if document_total == 0:
        return HUNDRED
    maximum = HUNDRED - (total_paid * HUNDRED / document_total)
    return max(ZERO, min(HUNDRED, maximum))


def discount_amount(subtotal: Decimal, remise: Decimal) -> Decimal:
    """Montant de la remise / Discount amount."""
    return round2(subtotal * remise / HUNDRED)


def post_discount_total(subtotal: Decimal, remise: Decimal) -> Decimal:
    """Total après remise / Post-discount total."""
    return round2(subtotal * (HUNDRED - remise) / HUNDRED)


def subtype_cap(doc_type: DocumentType) -> Decimal:
    """Plafond de remise propre au sous-type de document."""
    if doc_type == DocumentType.BL:
        return get_decimal("BL_REMISE_CAP")
    return HUNDRED


def effective_max_remise(
    doc_type: DocumentType,
    document_total: Decimal,
    total_paid: Decimal,
) -> Decimal:
    """Maximum effectif : min(borne des paiements, plafond du sous-type)."""
    return min(max_allowed_remise(document_total, total_paid), subtype_cap(doc_type))


def validate_remise(
    doc_type: DocumentType,
    document_total: Decimal,
    remise: Decimal | int | float | str,
    total_paid: Decimal,
) -> Decimal:
    """Valide une remise et retourne sa valeur arrondie.

    FR: Rejette une remise hors 0–100, supérieure au maximum effectif, ou
        qui ferait passer le total après remise sous les paiements reçus.
    EN: Rejects a remise outside 0–100, above the effective maximum, or
        that would bring the post-discount total below payments received.

    Args:
        doc_type: Sous-type du document (BL ou facture).
        document_total: Total brut avant remise.
        remise: Pourcentage demandé.
        total_paid: Somme des versements.

    Returns:
        La remise arrondie au centième.

    Raises:
        InvalidAmountError: Si la remise est illisible ou non finie.
        RemiseOutOfRangeError: Si la remise est hors de 0–100.
        RemiseTooHighError: Si la remise dépasse le maximum effectif.
        BelowPaymentsError: Si le total après remise < paiements reçus.
    """
    value = round2(to_decimal(remise))
    if value < ZERO or value > HUNDRED:
        msg = f"Remise hors limites : {value} (attendu entre 0 et 100)"
        raise RemiseOutOfRangeError(msg, expected=HUNDRED, actual=value)

    maximum = effective_max_remise(doc_type, document_total, total_paid)
    if value > maximum:
        msg = (
            f"Remise trop élevée : {value} % (maximum {round2(maximum)} %, "
            f"paiements reçus {round2(total_paid)})"
        )
        raise RemiseTooHighError(msg, expected=maximum, actual=value)

    new_total = post_discount_total(document_total, value)
    if new_total < total_paid:
        msg = (
            f"Le total après remise ({new_total}) serait inférieur aux "
            f"paiements reçus ({round2(total_paid)})"
        )
        raise BelowPaymentsError(msg, expected=total_paid, actual=new_total)

    return value


def check_total_covers_payments(
    document_total: Decimal,
    remise: Decimal,
    total_paid: Decimal,
) -> Decimal:
    """Vérifie qu'un nouveau total brut couvre encore les paiements reçus.

    Utilisé à l'enregistrement des lignes, quand le total change à remise
    constante. Retourne le total après remise.

    Raises:
        BelowPaymentsError: Si le total après remise < paiements reçus.
    """
    new_total = post_discount_total(document_total, remise)
    if new_total < total_paid:
        msg = (
            f"Avec une remise de {remise} %, le total ({new_total}) serait "
            f"inférieur aux paiements reçus ({round2(total_paid)})"
        )
        raise BelowPaymentsError(msg, expected=total_paid, actual=new_total)
    return new_total
