"""Arrondi monétaire déterministe à deux décimales."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from gescom.errors import InvalidAmountError

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convertit une valeur numérique finie en Decimal.

    Les flottants passent par leur représentation textuelle pour éviter
    d'importer l'erreur binaire (``0.1`` → ``Decimal("0.1")``).

    Raises:
        InvalidAmountError: Valeur booléenne, illisible (``"abc"``) ou non
            finie (``"NaN"``, ``"Infinity"``).
    """
    if isinstance(value, bool):
        msg = f"Valeur numérique attendue, reçu un booléen : {value!r}"
        raise InvalidAmountError(msg)
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
        except (InvalidOperation, TypeError, ValueError) as exc:
            msg = f"Valeur numérique illisible : {value!r}"
            raise InvalidAmountError(msg) from exc
    if not result.is_finite():
        msg = f"Valeur numérique non finie : {value!r}"
        raise InvalidAmountError(msg)
    return result


def round2(value: Decimal | int | float | str) -> Decimal:
    """Arrondit au centime le plus proche (demi vers le haut).

    FR: Toute valeur monétaire dérivée (sous-total, remise, total après
        remise, reste à payer, coût de production) passe par cette fonction
        avant d'être comparée, stockée ou affichée.
    EN: Every derived monetary value goes through this function before
        being compared, stored or displayed.
    """
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
