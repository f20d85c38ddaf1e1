"""Registre des versements (paiements échelonnés).

FR: Fonctions pures sur la liste ordonnée des versements d'un document.
    Un versement est ouvert (modifiable) tant que sa date tombe dans le mois
    calendaire courant, verrouillé sinon ; cet état se recalcule depuis
    l'horloge à chaque appel et n'est jamais stocké. Toute opération rejetée
    lève une ValidationError et laisse la liste intacte.
EN: Pure functions over a document's ordered versements. A versement is
    open while its date falls in the current calendar month, locked
    otherwise; the state is recomputed from the clock on every call.
    Rejected operations raise and leave the list untouched.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal

from gescom.conf import get_decimal, get_setting
from gescom.errors import (
    ExceedsTotalError,
    NonPositiveAmountError,
    NothingToClearError,
    OutsideCurrentMonthError,
    VersementLockedError,
    VersementNotFoundError,
)
from gescom.models.enums import VersementSaveMode, VersementState
from gescom.models.versement import Versement
from gescom.utils.money import ZERO, round2, to_decimal

logger = logging.getLogger(__name__)


def _today(today: date | None) -> date:
    return today if today is not None else date.today()


def is_in_current_month(value: date, today: date | None = None) -> bool:
    """Vérifie si une date tombe dans le mois calendaire courant."""
    now = _today(today)
    return value.year == now.year and value.month == now.month


def versement_state(versement: Versement, today: date | None = None) -> VersementState:
    """État (ouvert/verrouillé) d'un versement à la date du jour."""
    if is_in_current_month(versement.payment_date, today):
        return VersementState.OPEN
    return VersementState.LOCKED


def is_open(versement: Versement, today: date | None = None) -> bool:
    """Vérifie si un versement est modifiable."""
    return versement_state(versement, today) == VersementState.OPEN


def total_paid(versements: Iterable[Versement]) -> Decimal:
    """Somme arrondie des versements."""
    return round2(sum((v.amount for v in versements), ZERO))


def remaining(post_discount_total: Decimal, versements: Iterable[Versement]) -> Decimal:
    """Reste à payer (peut être négatif si le total a été réduit)."""
    return round2(post_discount_total - total_paid(versements))


def check_within_total(
    versements: Iterable[Versement], post_discount_total: Decimal
) -> Decimal:
    """Vérifie que la somme des versements reste sous le total après remise.

    Retourne la somme payée.

    Raises:
        ExceedsTotalError: Si les paiements dépassent le total après remise.
    """
    paid = total_paid(versements)
    if paid > post_discount_total:
        msg = (
            f"Le total des versements ({paid}) dépasse le total "
            f"après remise ({post_discount_total})"
        )
        raise ExceedsTotalError(msg, expected=post_discount_total, actual=paid)
    return paid


def _find(versements: Sequence[Versement], number: int) -> Versement:
    for versement in versements:
        if versement.number == number:
            return versement
    msg = f"Versement introuvable : n°{number}"
    raise VersementNotFoundError(msg)


def _require_open(versement: Versement, today: date | None) -> None:
    if not is_open(versement, today):
        logger.warning(
            "Versement n°%s du %s verrouillé (hors mois courant)",
            versement.number,
            versement.payment_date.isoformat(),
        )
        msg = (
            f"Versement verrouillé : n°{versement.number} du "
            f"{versement.payment_date.isoformat()} n'est pas du mois courant"
        )
        raise VersementLockedError(msg)


def _renumber(versements: Iterable[Versement]) -> list[Versement]:
    return [
        v if v.number == index else v.model_copy(update={"number": index})
        for index, v in enumerate(versements, start=1)
    ]


# --- Opérations ---


def add_versement(
    versements: Sequence[Versement],
    post_discount_total: Decimal,
    today: date | None = None,
) -> list[Versement]:
    """Ajoute un versement par défaut (montant 1, date du jour).

    Raises:
        ExceedsTotalError: Si les paiements dépasseraient le total après remise.
    """
    amount = get_decimal("DEFAULT_VERSEMENT_AMOUNT")
    potential = round2(total_paid(versements) + amount)
    if potential > post_discount_total:
        msg = (
            f"Le total des versements ({potential}) dépasserait le total "
            f"après remise ({post_discount_total})"
        )
        raise ExceedsTotalError(msg, expected=post_discount_total, actual=potential)

    versement = Versement(
        number=len(versements) + 1,
        amount=amount,
        payment_date=_today(today),
    )
    return [*versements, versement]


def update_amount(
    versements: Sequence[Versement],
    number: int,
    amount: Decimal | int | float | str,
    post_discount_total: Decimal,
    today: date | None = None,
) -> list[Versement]:
    """Modifie le montant d'un versement ouvert.

    Raises:
        VersementNotFoundError: Si le versement n'existe pas.
        VersementLockedError: Si le versement n'est pas du mois courant.
        InvalidAmountError: Si le montant est illisible ou non fini.
        NonPositiveAmountError: Si le montant arrondi est ≤ 0.
        ExceedsTotalError: Si le nouveau total dépasse le total après remise.
    """
    current = _find(versements, number)
    _require_open(current, today)

    rounded = round2(to_decimal(amount))
    if rounded <= ZERO:
        msg = f"Le montant du versement doit être positif (reçu {rounded})"
        raise NonPositiveAmountError(msg, actual=rounded)

    new_total = round2(total_paid(versements) - current.amount + rounded)
    if new_total > post_discount_total:
        msg = (
            f"Montant trop élevé : le total des versements ({new_total}) "
            f"dépasserait le total après remise ({post_discount_total})"
        )
        raise ExceedsTotalError(msg, expected=post_discount_total, actual=new_total)

    return [
        v.model_copy(update={"amount": rounded}) if v.number == number else v
        for v in versements
    ]


def update_date(
    versements: Sequence[Versement],
    number: int,
    new_date: date,
    today: date | None = None,
) -> list[Versement]:
    """Modifie la date d'un versement ouvert (dans le mois courant).

    Raises:
        VersementNotFoundError: Si le versement n'existe pas.
        VersementLockedError: Si le versement n'est pas du mois courant.
        OutsideCurrentMonthError: Si la nouvelle date sort du mois courant.
    """
    current = _find(versements, number)
    _require_open(current, today)

    if not is_in_current_month(new_date, today):
        msg = (
            f"La date {new_date.isoformat()} doit être dans le mois courant"
        )
        raise OutsideCurrentMonthError(msg)

    return [
        v.model_copy(update={"payment_date": new_date}) if v.number == number else v
        for v in versements
    ]


def remove_versement(
    versements: Sequence[Versement],
    number: int,
    today: date | None = None,
) -> list[Versement]:
    """Supprime un versement ouvert puis renumérote de 1 à N.

    Raises:
        VersementNotFoundError: Si le versement n'existe pas.
        VersementLockedError: Si le versement n'est pas du mois courant.
    """
    current = _find(versements, number)
    _require_open(current, today)
    return _renumber(v for v in versements if v.number != number)


def clear(
    versements: Sequence[Versement],
    post_discount_total: Decimal,
    today: date | None = None,
) -> list[Versement]:
    """Solde le document en un versement égal au reste à payer.

    Raises:
        NothingToClearError: Si le reste à payer est nul ou négatif.
    """
    balance = remaining(post_discount_total, versements)
    if balance <= ZERO:
        msg = f"Aucun solde restant à régler (reste {balance})"
        raise NothingToClearError(msg, actual=balance)

    versement = Versement(
        number=len(versements) + 1,
        amount=balance,
        payment_date=_today(today),
    )
    return [*versements, versement]


# --- Enregistrement ---


def open_versements(
    versements: Iterable[Versement],
    today: date | None = None,
) -> list[Versement]:
    """Sous-ensemble des versements ouverts."""
    return [v for v in versements if is_open(v, today)]


def versements_to_save(
    working: Sequence[Versement],
    committed: Sequence[Versement],
    today: date | None = None,
    mode: VersementSaveMode | str | None = None,
) -> list[Versement]:
    """Versements à transmettre à la couche de persistance.

    FR: En mode ``delta`` (défaut), transmet les versements ouverts ainsi
        que les versements verrouillés absents de l'instantané persisté
        (créés puis passés au mois suivant avant enregistrement), qui
        seraient sinon perdus. En mode ``all``, retransmet tout.
    EN: In ``delta`` mode (default), sends open versements plus locked
        versements missing from the committed snapshot, which would
        otherwise be lost. In ``all`` mode, resends everything.
    """
    if mode is None:
        mode = str(get_setting("VERSEMENT_SAVE_MODE"))
    mode = VersementSaveMode(mode)

    if mode == VersementSaveMode.ALL:
        return list(working)

    persisted = Counter((v.amount, v.payment_date) for v in committed)
    selected: list[Versement] = []
    for versement in working:
        if is_open(versement, today):
            selected.append(versement)
        elif persisted[(versement.amount, versement.payment_date)] > 0:
            persisted[(versement.amount, versement.payment_date)] -= 1
        else:
            logger.warning(
                "Versement verrouillé n°%s jamais enregistré : inclus dans la sauvegarde",
                versement.number,
            )
            selected.append(versement)
    return selected
