"""Énumérations pour la gestion commerciale.

FR: Natures de documents (achat/vente), types (BL/facture), statuts,
    actions de cycle de vie et états des versements.
EN: Document kinds, sub-types, statuses, lifecycle actions and
    versement states.
"""

from enum import StrEnum


class DocumentKind(StrEnum):
    """Nature du document commercial.

    FR: Un achat référence des matières premières chez un fournisseur,
        une vente référence des produits finis chez un client.
    EN: A purchase references raw materials from a vendor, a sale
        references finished products for a client.
    """

    PURCHASE = "purchase"
    """Achat / Purchase"""

    SALE = "sale"
    """Vente / Sale"""


class DocumentType(StrEnum):
    """Sous-type du document.

    FR: Le bon de livraison est plafonné à 50 % de remise ; la facture
        n'est bornée que par les paiements reçus.
    EN: Delivery notes are discount-capped at 50%; invoices are bounded
        only by payments received.
    """

    BL = "BL"
    """Bon de livraison / Delivery note"""

    INVOICE = "Invoice"
    """Facture / Invoice"""


class DocumentStatus(StrEnum):
    """Statut persistant d'un document."""

    APPROVED = "Approved"
    """Approuvé / Approved"""

    CANCELLED = "Cancelled"
    """Annulé / Cancelled"""

    DELETED = "Deleted"
    """Supprimé (côté moteur uniquement) / Deleted (engine side only)"""


class DocumentAction(StrEnum):
    """Action applicable à un document."""

    EDIT = "edit"
    """Modification description/date/mode de paiement/remise"""

    EDIT_ITEMS = "edit_items"
    """Modification des lignes"""

    RECORD_PAYMENTS = "record_payments"
    """Saisie des versements"""

    CANCEL = "cancel"
    """Annulation (irréversible)"""

    FINALIZE = "finalize"
    """Finalisation (irréversible)"""

    DELETE = "delete"
    """Suppression (dernier document uniquement)"""


class VersementState(StrEnum):
    """État d'un versement, calculé depuis l'horloge.

    FR: Jamais stocké : un versement est ouvert tant que sa date tombe
        dans le mois calendaire courant.
    EN: Never stored: a versement is open while its date falls in the
        current calendar month.
    """

    OPEN = "open"
    """Modifiable / Editable"""

    LOCKED = "locked"
    """Lecture seule / Read-only"""


class CatalogKind(StrEnum):
    """Catalogue référencé par les lignes."""

    RAW_MATERIAL = "raw_material"
    """Matière première (lignes d'achat, recettes)"""

    PRODUCT = "product"
    """Produit fini (lignes de vente)"""


class VersementSaveMode(StrEnum):
    """Périmètre transmis lors de l'enregistrement des versements."""

    DELTA = "delta"
    """Versements ouverts et versements jamais persistés"""

    ALL = "all"
    """Tous les versements"""
