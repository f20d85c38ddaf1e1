"""Configuration du moteur de gestion commerciale.

FR: Helper pour accéder aux paramètres GESCOM. Ordre de résolution :
    surcharges passées à ``configure()``, puis variables d'environnement
    ``GESCOM_<NOM>``, puis valeurs par défaut.
EN: Helper for accessing GESCOM settings. Resolution order: overrides
    passed to ``configure()``, then ``GESCOM_<NAME>`` environment
    variables, then defaults.
"""

from __future__ import annotations

import logging
import os
from decimal import Decimal

logger = logging.getLogger(__name__)

ENV_PREFIX = "GESCOM_"

DEFAULTS: dict[str, object] = {
    "BL_REMISE_CAP": Decimal("50"),
    "PURCHASE_MIN_QUANTITY": Decimal("1"),
    "RECIPE_MIN_QUANTITY": Decimal("0.01"),
    "DEFAULT_VERSEMENT_AMOUNT": Decimal("1"),
    "VERSEMENT_SAVE_MODE": "delta",
    "CURRENCY": "DA",
}

_overrides: dict[str, object] = {}


def _coerce(name: str, raw: str) -> object:
    default = DEFAULTS[name]
    if isinstance(default, Decimal):
        return Decimal(raw)
    return raw


def get_setting(name: str) -> object:
    """Retourne la valeur d'un paramètre GESCOM.

    Raises:
        KeyError: Si le paramètre est inconnu.
    """
    if name not in DEFAULTS:
        msg = f"Paramètre GESCOM inconnu : {name}"
        raise KeyError(msg)
    if name in _overrides:
        return _overrides[name]
    raw = os.environ.get(f"{ENV_PREFIX}{name}")
    if raw is not None:
        logger.debug("Paramètre %s lu depuis l'environnement", name)
        return _coerce(name, raw)
    return DEFAULTS[name]


def get_decimal(name: str) -> Decimal:
    """Retourne un paramètre numérique sous forme de Decimal."""
    value = get_setting(name)
    return value if isinstance(value, Decimal) else Decimal(str(value))


def configure(**settings: object) -> None:
    """Surcharge des paramètres pour le processus courant.

    Raises:
        KeyError: Si un paramètre est inconnu.
    """
    unknown = [name for name in settings if name not in DEFAULTS]
    if unknown:
        msg = f"Paramètres GESCOM inconnus : {', '.join(sorted(unknown))}"
        raise KeyError(msg)
    _overrides.update(settings)


def reset() -> None:
    """Supprime toutes les surcharges."""
    _overrides.clear()
