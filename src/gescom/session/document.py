"""Session d'édition d'un document commercial.

FR: Charge un document, ses lignes et ses versements depuis la couche de
    persistance, puis gère deux copies : la copie persistée (dernier état
    validé) et la copie de travail modifiée par l'utilisateur. Chaque
    enregistrement valide d'abord la copie de travail localement et
    n'appelle la persistance qu'ensuite ; la copie persistée n'est mise à
    jour qu'après succès de l'appel.
EN: Loads a document, its lines and versements, then manages a committed
    copy and a working copy. Every save validates locally first and only
    then awaits storage; the committed copy is updated only on success.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from gescom.conf import get_setting
from gescom.errors import RequiredFieldError, TransitionError
from gescom.ledger import items as item_ledger
from gescom.ledger import remise as remise_calc
from gescom.ledger import versements as versement_ledger
from gescom.lifecycle.manager import DocumentLifecycle, check_delete_order
from gescom.models.catalog import CatalogEntry
from gescom.models.document import Document, LineItem
from gescom.models.enums import (
    CatalogKind,
    DocumentAction,
    DocumentKind,
    DocumentStatus,
    VersementSaveMode,
)
from gescom.models.versement import Versement
from gescom.production.calculator import stock_index
from gescom.session.base import call_storage, validate_record, validate_records
from gescom.storage.base import BaseStorage, Record

logger = logging.getLogger(__name__)

CATALOG_FOR_KIND: dict[DocumentKind, CatalogKind] = {
    DocumentKind.PURCHASE: CatalogKind.RAW_MATERIAL,
    DocumentKind.SALE: CatalogKind.PRODUCT,
}


def _item_records(items: Sequence[LineItem]) -> list[Record]:
    return [{"ref_id": item.ref_id, "quantity": item.quantity} for item in items]


def _versement_records(versements: Sequence[Versement]) -> list[Record]:
    return [{"amount": v.amount, "payment_date": v.payment_date} for v in versements]


class DocumentSession:
    """Session d'édition d'un document (achat ou vente).

    FR: Les indicateurs ``editing``, ``editing_items`` et
        ``editing_versements`` indiquent les modifications en cours. Les
        lignes et versements de travail sont exposés par ``items`` et
        ``versements`` ; les copies persistées par ``committed_items`` et
        ``committed_versements``.
    EN: ``editing``, ``editing_items`` and ``editing_versements`` flag the
        edits in progress. Working lines and versements are exposed by
        ``items`` and ``versements``; committed copies by
        ``committed_items`` and ``committed_versements``.
    """

    def __init__(
        self,
        storage: BaseStorage,
        document: Document,
        items: Sequence[LineItem],
        versements: Sequence[Versement],
        catalog: Sequence[CatalogEntry],
        *,
        today: date | None = None,
    ) -> None:
        self.storage = storage
        self.document = document
        self.catalog: list[CatalogEntry] = list(catalog)
        self.today = today

        self.committed_items: list[LineItem] = list(items)
        self.items: list[LineItem] = list(items)
        self.committed_versements: list[Versement] = list(versements)
        self.versements: list[Versement] = list(versements)

        self.lifecycle = DocumentLifecycle.for_document(document)
        self.editing = False
        self.editing_items = False
        self.editing_versements = False

    @classmethod
    async def load(
        cls,
        storage: BaseStorage,
        kind: DocumentKind,
        document_id: int,
        *,
        today: date | None = None,
    ) -> DocumentSession:
        """Charge un document et son contexte depuis la persistance.

        Raises:
            PersistenceError: Si un appel échoue ou si un enregistrement
                est invalide (StorageNotFoundError si le document n'existe pas).
        """
        document_record = await call_storage(
            "get_document", storage.get_document(kind, document_id)
        )
        document = validate_record(Document, document_record, kind=kind)

        catalog = validate_records(
            CatalogEntry,
            await call_storage("get_catalog", storage.get_catalog(CATALOG_FOR_KIND[kind])),
        )
        names = {entry.id: entry.name for entry in catalog}

        items = [
            item if item.name else item.model_copy(update={"name": names.get(item.ref_id, "")})
            for item in validate_records(
                LineItem,
                await call_storage("get_items", storage.get_items(kind, document_id)),
            )
        ]
        versements = validate_records(
            Versement,
            await call_storage("get_versements", storage.get_versements(kind, document_id)),
        )

        logger.debug(
            "Document %s %s n°%s chargé : %d ligne(s), %d versement(s)",
            kind.value,
            document.doc_type.value,
            document.code,
            len(items),
            len(versements),
        )
        return cls(storage, document, items, versements, catalog, today=today)

    # --- Valeurs dérivées ---

    @property
    def kind(self) -> DocumentKind:
        return self.document.kind

    @property
    def subtotal(self) -> Decimal:
        """Sous-total des lignes de travail."""
        return item_ledger.subtotal(self.items)

    @property
    def discount_amount(self) -> Decimal:
        """Montant de la remise sur le total persisté."""
        return remise_calc.discount_amount(self.document.total, self.document.remise)

    @property
    def post_discount_total(self) -> Decimal:
        """Total après remise, borne des versements."""
        return remise_calc.post_discount_total(self.document.total, self.document.remise)

    @property
    def total_paid(self) -> Decimal:
        return versement_ledger.total_paid(self.versements)

    @property
    def remaining(self) -> Decimal:
        return versement_ledger.remaining(self.post_discount_total, self.versements)

    @property
    def is_fully_paid(self) -> bool:
        return self.remaining <= 0

    @property
    def payments_bound(self) -> Decimal:
        """Paiements à couvrir par le total après remise.

        FR: Pendant une saisie de versements, le plus grand des totaux
            persisté et de travail, pour que la remise ou les lignes ne
            passent pas sous des versements pas encore enregistrés.
        EN: While versements are being edited, the larger of the committed
            and working paid totals.
        """
        committed = versement_ledger.total_paid(self.committed_versements)
        if not self.editing_versements:
            return committed
        return max(committed, versement_ledger.total_paid(self.versements))

    @property
    def max_allowed_remise(self) -> Decimal:
        return remise_calc.max_allowed_remise(self.document.total, self.payments_bound)

    @property
    def effective_max_remise(self) -> Decimal:
        """Remise maximale effective (paiements reçus et plafond du sous-type)."""
        return remise_calc.effective_max_remise(
            self.document.doc_type,
            self.document.total,
            self.payments_bound,
        )

    def open_versements(self) -> list[Versement]:
        """Versements de travail encore modifiables."""
        return versement_ledger.open_versements(self.versements, self.today)

    # --- Modification du document ---

    def begin_edit(self) -> None:
        """Ouvre la modification des champs du document."""
        self.lifecycle.require(DocumentAction.EDIT)
        self.editing = True

    def cancel_edit(self) -> None:
        self.editing = False

    async def save_edit(
        self,
        *,
        description: str | None = None,
        issue_date: date | None = None,
        payment_method: str | None = None,
        remise: Decimal | int | float | str | None = None,
    ) -> Document:
        """Enregistre description, date, mode de paiement et remise.

        Les champs non fournis conservent leur valeur actuelle.

        Raises:
            TransitionError: Si aucune modification n'est en cours.
            RequiredFieldError: Si le mode de paiement est vide.
            RemiseOutOfRangeError, RemiseTooHighError, BelowPaymentsError:
                Si la remise est invalide.
            PersistenceError: Si l'enregistrement échoue.
        """
        if not self.editing:
            msg = "Aucune modification du document en cours"
            raise TransitionError(msg)
        self.lifecycle.require(DocumentAction.EDIT)

        new_payment_method = (
            self.document.payment_method if payment_method is None else payment_method.strip()
        )
        if not new_payment_method:
            msg = "Le mode de paiement est obligatoire"
            raise RequiredFieldError(msg)

        new_remise = remise_calc.validate_remise(
            self.document.doc_type,
            self.document.total,
            self.document.remise if remise is None else remise,
            self.payments_bound,
        )
        update = {
            "description": self.document.description if description is None else description,
            "issue_date": self.document.issue_date if issue_date is None else issue_date,
            "payment_method": new_payment_method,
            "remise": new_remise,
        }

        await call_storage(
            "update_document",
            self.storage.update_document(self.kind, self.document.id, **update),
        )
        self.document = self.document.model_copy(update=update)
        self.editing = False
        logger.info(
            "Document %s n°%s modifié (remise %s %%)",
            self.document.doc_type.value,
            self.document.code,
            new_remise,
        )
        return self.document

    # --- Lignes ---

    def _require_items_edit(self) -> None:
        if not self.editing_items:
            msg = "Aucune modification des lignes en cours"
            raise TransitionError(msg)

    def begin_items_edit(self) -> None:
        """Ouvre la modification des lignes (document finalisé uniquement)."""
        self.lifecycle.require(DocumentAction.EDIT_ITEMS)
        self.items = list(self.committed_items)
        self.editing_items = True

    def add_item(self) -> list[LineItem]:
        self._require_items_edit()
        self.items = item_ledger.add_item(self.catalog, self.items)
        return self.items

    def update_item(
        self,
        target_ref: int,
        field: item_ledger.ItemField,
        value: int | Decimal | float | str,
    ) -> list[LineItem]:
        self._require_items_edit()
        self.items = item_ledger.update_item(self.items, target_ref, field, value, self.catalog)
        return self.items

    def remove_item(self, target_ref: int) -> list[LineItem]:
        self._require_items_edit()
        self.items = item_ledger.remove_item(self.items, target_ref)
        return self.items

    def revert_items(self) -> None:
        """Restaure les lignes persistées et ferme la modification."""
        self.items = list(self.committed_items)
        self.editing_items = False

    def sale_quantity_errors(self) -> list[str]:
        """Erreurs de quantité des lignes de vente de travail (vide pour un achat)."""
        if self.kind != DocumentKind.SALE:
            return []
        return item_ledger.validate_sale_quantities(
            self.items, self.committed_items, stock_index(self.catalog)
        )

    async def save_items(self) -> Document:
        """Enregistre les lignes de travail et le nouveau total brut.

        Raises:
            TransitionError: Si aucune modification n'est en cours.
            SaleQuantityError: Si une quantité de vente dépasse le disponible.
            BelowPaymentsError: Si le nouveau total après remise passe sous
                les paiements reçus.
            PersistenceError: Si l'enregistrement échoue.
        """
        self._require_items_edit()
        self.lifecycle.require(DocumentAction.EDIT_ITEMS)

        if self.kind == DocumentKind.SALE:
            item_ledger.check_sale_quantities(
                self.items, self.committed_items, stock_index(self.catalog)
            )
        new_total = item_ledger.subtotal(self.items)
        remise_calc.check_total_covers_payments(
            new_total,
            self.document.remise,
            self.payments_bound,
        )

        await call_storage(
            "update_items",
            self.storage.update_items(
                self.kind, self.document.id, _item_records(self.items), new_total
            ),
        )
        self.committed_items = list(self.items)
        self.document = self.document.model_copy(update={"total": new_total})
        self.editing_items = False
        logger.info(
            "Lignes du document %s n°%s enregistrées : %d ligne(s), total %s",
            self.document.doc_type.value,
            self.document.code,
            len(self.items),
            new_total,
        )
        await self.refresh_catalog()
        return self.document

    async def refresh_catalog(self) -> list[CatalogEntry]:
        """Relit le catalogue (stocks modifiés par l'enregistrement)."""
        records = await call_storage(
            "get_catalog", self.storage.get_catalog(CATALOG_FOR_KIND[self.kind])
        )
        self.catalog = validate_records(CatalogEntry, records)
        return self.catalog

    # --- Versements ---

    def _require_versements_edit(self) -> None:
        if not self.editing_versements:
            msg = "Aucune saisie de versements en cours"
            raise TransitionError(msg)

    def begin_versements_edit(self) -> None:
        """Ouvre la saisie des versements (document finalisé uniquement)."""
        self.lifecycle.require(DocumentAction.RECORD_PAYMENTS)
        self.versements = list(self.committed_versements)
        self.editing_versements = True

    def add_versement(self) -> list[Versement]:
        self._require_versements_edit()
        self.versements = versement_ledger.add_versement(
            self.versements, self.post_discount_total, self.today
        )
        return self.versements

    def update_versement_amount(
        self, number: int, amount: Decimal | int | float | str
    ) -> list[Versement]:
        self._require_versements_edit()
        self.versements = versement_ledger.update_amount(
            self.versements, number, amount, self.post_discount_total, self.today
        )
        return self.versements

    def update_versement_date(self, number: int, new_date: date) -> list[Versement]:
        self._require_versements_edit()
        self.versements = versement_ledger.update_date(
            self.versements, number, new_date, self.today
        )
        return self.versements

    def remove_versement(self, number: int) -> list[Versement]:
        self._require_versements_edit()
        self.versements = versement_ledger.remove_versement(self.versements, number, self.today)
        return self.versements

    def clear_balance(self) -> list[Versement]:
        """Solde le reste à payer en un versement daté du jour."""
        self._require_versements_edit()
        self.versements = versement_ledger.clear(
            self.versements, self.post_discount_total, self.today
        )
        return self.versements

    def revert_versements(self) -> None:
        """Restaure les versements persistés et ferme la saisie."""
        self.versements = list(self.committed_versements)
        self.editing_versements = False

    async def save_versements(self) -> list[Versement]:
        """Transmet les versements à la persistance puis les relit.

        FR: Le périmètre transmis dépend de ``VERSEMENT_SAVE_MODE`` ; les
            versements relus (renumérotés par la persistance) deviennent la
            nouvelle copie persistée.
        EN: The sent subset depends on ``VERSEMENT_SAVE_MODE``; versements
            read back become the new committed copy.

        Raises:
            TransitionError: Si aucune saisie n'est en cours.
            ExceedsTotalError: Si les versements de travail dépassent le
                total après remise courant.
            PersistenceError: Si l'enregistrement échoue.
        """
        self._require_versements_edit()
        self.lifecycle.require(DocumentAction.RECORD_PAYMENTS)
        versement_ledger.check_within_total(self.versements, self.post_discount_total)

        mode = VersementSaveMode(str(get_setting("VERSEMENT_SAVE_MODE")))
        to_save = versement_ledger.versements_to_save(
            self.versements, self.committed_versements, self.today, mode
        )
        await call_storage(
            "save_versements",
            self.storage.save_versements(
                self.kind,
                self.document.id,
                _versement_records(to_save),
                replace_all=mode == VersementSaveMode.ALL,
            ),
        )
        records = await call_storage(
            "get_versements", self.storage.get_versements(self.kind, self.document.id)
        )
        saved = validate_records(Versement, records)
        self.committed_versements = list(saved)
        self.versements = list(saved)
        self.editing_versements = False
        logger.info(
            "Versements du document %s n°%s enregistrés : payé %s sur %s",
            self.document.doc_type.value,
            self.document.code,
            self.total_paid,
            self.post_discount_total,
        )
        return self.versements

    # --- Cycle de vie ---

    def _close_edits(self) -> None:
        self.editing = False
        self.editing_items = False
        self.editing_versements = False
        self.items = list(self.committed_items)
        self.versements = list(self.committed_versements)

    async def cancel(self, *, confirmed: bool = False) -> Document:
        """Annule le document et restitue ses effets sur les stocks.

        Raises:
            TransitionError: Si le document n'est pas approuvé.
            ConfirmationRequiredError: Sans confirmation explicite.
            PersistenceError: Si l'annulation échoue.
        """
        self.lifecycle.check(DocumentAction.CANCEL, confirmed=confirmed)
        await call_storage(
            "cancel_document",
            self.storage.cancel_document(
                self.kind, self.document.id, _item_records(self.committed_items)
            ),
        )
        self.lifecycle.apply(DocumentAction.CANCEL, confirmed=True)
        self.document = self.document.model_copy(update={"status": DocumentStatus.CANCELLED})
        self._close_edits()
        logger.info(
            "Document %s n°%s annulé", self.document.doc_type.value, self.document.code
        )
        await self.refresh_catalog()
        return self.document

    async def finalize(self) -> Document:
        """Finalise le document (irréversible).

        Raises:
            TransitionError: Si le document est annulé ou déjà finalisé.
            PersistenceError: Si la finalisation échoue.
        """
        self.lifecycle.check(DocumentAction.FINALIZE)
        await call_storage(
            "finalize_document", self.storage.finalize_document(self.kind, self.document.id)
        )
        self.lifecycle.apply(DocumentAction.FINALIZE)
        self.document = self.document.model_copy(update={"finalized": True})
        logger.info(
            "Document %s n°%s finalisé", self.document.doc_type.value, self.document.code
        )
        return self.document

    async def delete(self, *, confirmed: bool = False) -> None:
        """Supprime le document s'il est le dernier de sa numérotation.

        Raises:
            TransitionError: Si le document est déjà supprimé.
            ConfirmationRequiredError: Sans confirmation explicite.
            NotLatestDocumentError: Si un document plus récent existe.
            PersistenceError: Si la suppression échoue.
        """
        self.lifecycle.check(DocumentAction.DELETE, confirmed=confirmed)
        next_code = await call_storage(
            "get_next_code",
            self.storage.get_next_code(
                self.kind,
                self.document.doc_type,
                self.document.counterparty_id,
                self.document.year,
            ),
        )
        check_delete_order(self.document, next_code)

        await call_storage(
            "delete_document",
            self.storage.delete_document(
                self.kind, self.document.id, _item_records(self.committed_items)
            ),
        )
        self.lifecycle.apply(DocumentAction.DELETE, confirmed=True)
        self.document = self.document.model_copy(update={"status": DocumentStatus.DELETED})
        self._close_edits()
        logger.info(
            "Document %s n°%s supprimé", self.document.doc_type.value, self.document.code
        )
