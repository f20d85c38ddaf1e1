"""Gestion du cycle de vie des documents commerciaux.

FR: Machine à états Approuvé/Annulé/Supprimé, indicateur de finalisation
    et contrôle d'ordre des suppressions.
EN: Approved/Cancelled/Deleted state machine, finalization flag and
    delete ordering check.
"""

from gescom.lifecycle.manager import (
    ACTION_RULES,
    TERMINAL_STATUSES,
    TRANSITIONS,
    ActionRule,
    DocumentLifecycle,
    LifecycleEvent,
    check_delete_order,
)

__all__ = [
    "ACTION_RULES",
    "ActionRule",
    "DocumentLifecycle",
    "LifecycleEvent",
    "TERMINAL_STATUSES",
    "TRANSITIONS",
    "check_delete_order",
]
