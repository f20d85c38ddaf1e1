"""Machine à états pour le cycle de vie des documents commerciaux.

FR: Deux statuts persistants (Approuvé, Annulé), un statut terminal côté
    moteur (Supprimé) et un indicateur orthogonal « finalisé » qui ne passe
    que de faux à vrai. Chaque action est validée contre la table des
    transitions et les gardes métier ; un historique horodaté est conservé.
    La suppression est en plus soumise au contrôle d'ordre : seul le dernier
    document émis de son périmètre de numérotation peut être supprimé.
EN: Two persisted statuses (Approved, Cancelled), an engine-side terminal
    status (Deleted) and an orthogonal one-way ``finalized`` flag. Every
    action is checked against the transition table and business guards;
    a timestamped history is kept. Delete additionally requires the
    ordering check.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import NamedTuple

from pydantic import BaseModel

from gescom.errors import (
    ConfirmationRequiredError,
    NotLatestDocumentError,
    TransitionError,
)
from gescom.models.document import Document
from gescom.models.enums import DocumentAction, DocumentStatus

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Graphe des actions autorisées par statut
# ---------------------------------------------------------------------------

TRANSITIONS: dict[DocumentStatus, list[DocumentAction]] = {
    DocumentStatus.APPROVED: [
        DocumentAction.EDIT,
        DocumentAction.EDIT_ITEMS,
        DocumentAction.RECORD_PAYMENTS,
        DocumentAction.CANCEL,
        DocumentAction.FINALIZE,
        DocumentAction.DELETE,
    ],
    DocumentStatus.CANCELLED: [
        DocumentAction.DELETE,
    ],
    # Terminal
    DocumentStatus.DELETED: [],
}

# ---------------------------------------------------------------------------
# Métadonnées des actions
# ---------------------------------------------------------------------------


class ActionRule(NamedTuple):
    """Gardes et effet d'une action de cycle de vie."""

    target: DocumentStatus | None = None
    """Statut atteint (None : statut inchangé)"""
    requires_finalized: bool | None = None
    """True : document finalisé exigé ; False : non finalisé exigé"""
    confirmation_required: bool = False
    sets_finalized: bool = False


ACTION_RULES: dict[DocumentAction, ActionRule] = {
    DocumentAction.EDIT: ActionRule(),
    DocumentAction.EDIT_ITEMS: ActionRule(requires_finalized=True),
    DocumentAction.RECORD_PAYMENTS: ActionRule(requires_finalized=True),
    DocumentAction.CANCEL: ActionRule(
        target=DocumentStatus.CANCELLED,
        confirmation_required=True,
    ),
    DocumentAction.FINALIZE: ActionRule(
        requires_finalized=False,
        sets_finalized=True,
    ),
    DocumentAction.DELETE: ActionRule(
        target=DocumentStatus.DELETED,
        confirmation_required=True,
    ),
}

TERMINAL_STATUSES: frozenset[DocumentStatus] = frozenset(
    status for status, actions in TRANSITIONS.items() if not actions
)


class LifecycleEvent(BaseModel):
    """Événement du cycle de vie d'un document."""

    timestamp: datetime
    action: DocumentAction
    status: DocumentStatus
    finalized: bool


def check_delete_order(document: Document, next_code: int) -> None:
    """Contrôle d'ordre avant suppression.

    FR: Le document doit être le dernier émis de son périmètre de
        numérotation, c'est-à-dire ``code == next_code - 1`` ; sinon la
        numérotation légale présenterait un trou.
    EN: The document must be the latest one issued in its numbering scope.

    Raises:
        NotLatestDocumentError: Si le document n'est pas le dernier.
    """
    if document.code != next_code - 1:
        logger.warning(
            "Suppression refusée : %s %s n°%s n'est pas le dernier (prochain code %s)",
            document.kind.value,
            document.doc_type.value,
            document.code,
            next_code,
        )
        msg = (
            f"Le {document.doc_type.value} n°{document.code} n'est pas le dernier "
            f"document émis (dernier : n°{next_code - 1})"
        )
        raise NotLatestDocumentError(msg)


class DocumentLifecycle:
    """Gestionnaire du cycle de vie d'un document.

    FR: Applique les actions autorisées par ``TRANSITIONS`` et
        ``ACTION_RULES`` et conserve l'historique des événements.
    EN: Applies the actions allowed by ``TRANSITIONS`` and
        ``ACTION_RULES`` and keeps the event history.
    """

    def __init__(
        self,
        document_reference: str,
        status: DocumentStatus = DocumentStatus.APPROVED,
        finalized: bool = False,
    ) -> None:
        self.document_reference = document_reference
        self.status = status
        self.finalized = finalized
        self.history: list[LifecycleEvent] = []

    @classmethod
    def for_document(cls, document: Document) -> DocumentLifecycle:
        """Construit le gestionnaire depuis l'état d'un document."""
        reference = f"{document.kind.value}-{document.doc_type.value}-{document.code}"
        return cls(reference, status=document.status, finalized=document.finalized)

    def _refusal(self, action: DocumentAction) -> str | None:
        if action not in TRANSITIONS.get(self.status, []):
            allowed = [a.value for a in TRANSITIONS.get(self.status, [])]
            return (
                f"Action non autorisée : {action.value} depuis {self.status.value}. "
                f"Actions possibles : {allowed}"
            )
        rule = ACTION_RULES[action]
        if rule.requires_finalized is True and not self.finalized:
            return f"Action {action.value} réservée aux documents finalisés"
        if rule.requires_finalized is False and self.finalized:
            return f"Action {action.value} impossible : document déjà finalisé"
        return None

    def can(self, action: DocumentAction) -> bool:
        """Vérifie si l'action est autorisée dans l'état courant."""
        return self._refusal(action) is None

    def require(self, action: DocumentAction) -> None:
        """Lève TransitionError si l'action n'est pas autorisée."""
        refusal = self._refusal(action)
        if refusal is not None:
            raise TransitionError(refusal)

    def check(self, action: DocumentAction, *, confirmed: bool = False) -> None:
        """Valide une action sans modifier l'état.

        Raises:
            TransitionError: Si l'action est interdite dans l'état courant.
            ConfirmationRequiredError: Si une confirmation est exigée.
        """
        self.require(action)
        if ACTION_RULES[action].confirmation_required and not confirmed:
            msg = f"L'action {action.value} exige une confirmation explicite"
            raise ConfirmationRequiredError(msg)

    def apply(
        self,
        action: DocumentAction,
        *,
        confirmed: bool = False,
        timestamp: datetime | None = None,
    ) -> LifecycleEvent:
        """Applique une action et enregistre l'événement.

        Args:
            action: Action à appliquer.
            confirmed: Confirmation explicite (annulation, suppression).
            timestamp: Horodatage (UTC now par défaut).

        Returns:
            L'événement de cycle de vie créé.

        Raises:
            TransitionError: Si l'action est interdite dans l'état courant.
            ConfirmationRequiredError: Si une confirmation est exigée.
        """
        self.check(action, confirmed=confirmed)

        rule = ACTION_RULES[action]
        if rule.target is not None:
            self.status = rule.target
        if rule.sets_finalized:
            self.finalized = True

        event = LifecycleEvent(
            timestamp=timestamp or datetime.now(UTC),
            action=action,
            status=self.status,
            finalized=self.finalized,
        )
        self.history.append(event)
        logger.debug(
            "%s : %s → statut %s", self.document_reference, action.value, self.status.value
        )
        return event

    def is_terminal(self) -> bool:
        """Vérifie si le statut courant est terminal."""
        return self.status in TERMINAL_STATUSES
