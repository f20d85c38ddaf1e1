"""Modèle des versements (paiements échelonnés)."""

from datetime import date
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, Field


class Versement(BaseModel):
    """Versement sur le total après remise d'un document.

    FR: Numéroté à partir de 1 sans trou. Modifiable uniquement pendant
        le mois calendaire de sa date.
    EN: Numbered from 1 with no gaps. Editable only during the calendar
        month of its date.
    """

    number: int = Field(..., gt=0, description="Numéro d'ordre / Sequence number")
    amount: Decimal = Field(..., gt=0, description="Montant / Amount")
    payment_date: date = Field(
        ...,
        validation_alias=AliasChoices("payment_date", "date"),
        description="Date du versement / Payment date",
    )
