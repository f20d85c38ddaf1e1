"""Registres des lignes, de la remise et des versements.

FR: Fonctions pures de calcul et de validation appliquées aux copies de
    travail d'un document avant tout appel à la persistance.
EN: Pure computation and validation functions applied to a document's
    working copies before any storage call.
"""

from gescom.ledger.items import (
    add_item,
    check_sale_quantities,
    max_sale_quantity,
    new_item,
    remove_item,
    subtotal,
    update_item,
    validate_sale_quantities,
)
from gescom.ledger.remise import (
    check_total_covers_payments,
    discount_amount,
    effective_max_remise,
    max_allowed_remise,
    post_discount_total,
    subtype_cap,
    validate_remise,
)
from gescom.ledger.versements import (
    add_versement,
    check_within_total,
    clear,
    is_in_current_month,
    is_open,
    open_versements,
    remaining,
    remove_versement,
    total_paid,
    update_amount,
    update_date,
    versement_state,
    versements_to_save,
)

__all__ = [
    "add_item",
    "add_versement",
    "check_sale_quantities",
    "check_total_covers_payments",
    "check_within_total",
    "clear",
    "discount_amount",
    "effective_max_remise",
    "is_in_current_month",
    "is_open",
    "max_allowed_remise",
    "max_sale_quantity",
    "new_item",
    "open_versements",
    "post_discount_total",
    "remaining",
    "remove_item",
    "remove_versement",
    "subtotal",
    "subtype_cap",
    "total_paid",
    "update_amount",
    "update_date",
    "update_item",
    "validate_remise",
    "validate_sale_quantities",
    "versement_state",
    "versements_to_save",
]
