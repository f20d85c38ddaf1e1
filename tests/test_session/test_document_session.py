"""Tests de la session d'édition des documents.

FR: Chaque enregistrement valide la copie de travail avant l'appel de
    persistance ; un refus ou un échec laisse la copie persistée intacte.
EN: Every save validates the working copy before the storage call; a
    rejection or failure leaves the committed copy untouched.
"""

from datetime import date
from decimal import Decimal

import pytest

from gescom import conf
from gescom.errors import (
    BelowPaymentsError,
    ConfirmationRequiredError,
    ExceedsTotalError,
    InvalidAmountError,
    NotLatestDocumentError,
    PersistenceError,
    RemiseTooHighError,
    RequiredFieldError,
    SaleQuantityError,
    TransitionError,
    VersementLockedError,
)
from gescom.models.document import Document
from gescom.models.enums import CatalogKind, DocumentKind, DocumentStatus
from gescom.session.document import DocumentSession
from gescom.storage.connectors.memory import MemoryStorage
from gescom.storage.errors import StorageConnectionError, StorageNotFoundError

D = Decimal
TODAY = date(2024, 5, 15)
NEXT_MONTH = date(2024, 6, 3)


class BrokenStorage(MemoryStorage):
    """Stockage dont les lignes lèvent une erreur non typée."""

    async def get_items(self, kind, document_id):  # type: ignore[no-untyped-def]
        raise RuntimeError("connexion perdue")


class CorruptStorage(MemoryStorage):
    """Stockage qui renvoie un versement invalide."""

    async def get_versements(self, kind, document_id):  # type: ignore[no-untyped-def]
        return [{"number": 0, "amount": "-5", "payment_date": "2024-05-02"}]


class AliasStorage(MemoryStorage):
    """Stockage qui renvoie les lignes avec la clé historique ``p_id``."""

    async def get_items(self, kind, document_id):  # type: ignore[no-untyped-def]
        return [{"p_id": 10, "quantity": "20", "unit_price": "50.00"}]


async def _sale(storage: MemoryStorage) -> DocumentSession:
    return await DocumentSession.load(storage, DocumentKind.SALE, 1, today=TODAY)


async def _purchase(storage: MemoryStorage) -> DocumentSession:
    return await DocumentSession.load(storage, DocumentKind.PURCHASE, 2, today=TODAY)


class TestLoad:
    """Chargement du document et de son contexte."""

    async def test_snapshot(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        assert session.document.code == 1
        assert [item.name for item in session.items] == ["Gâteau"]
        assert session.items == session.committed_items
        assert [v.number for v in session.versements] == [1, 2]
        assert [entry.id for entry in session.catalog] == [10, 11]
        assert not (session.editing or session.editing_items or session.editing_versements)

    async def test_derived_values(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        assert session.subtotal == D("1000.00")
        assert session.post_discount_total == D("1000.00")
        assert session.total_paid == D("500.00")
        assert session.remaining == D("500.00")
        assert session.is_fully_paid is False
        assert session.max_allowed_remise == D("50")
        assert session.effective_max_remise == D("50")
        assert [v.number for v in session.open_versements()] == [2]

    async def test_bl_effective_max(self, populated_storage: MemoryStorage) -> None:
        session = await _purchase(populated_storage)
        assert session.max_allowed_remise == D("100")
        assert session.effective_max_remise == D("50")

    async def test_unknown_document(self, populated_storage: MemoryStorage) -> None:
        with pytest.raises(StorageNotFoundError):
            await DocumentSession.load(populated_storage, DocumentKind.SALE, 404)

    async def test_storage_failure_logged(
        self, populated_storage: MemoryStorage, caplog: pytest.LogCaptureFixture
    ) -> None:
        populated_storage.fail_on.add("get_versements")
        with caplog.at_level("ERROR"), pytest.raises(StorageConnectionError):
            await _sale(populated_storage)
        assert "get_versements" in caplog.text

    async def test_unexpected_error_wrapped(
        self, products: list, sale_invoice: Document
    ) -> None:
        storage = BrokenStorage(today=TODAY)
        for entry in products:
            storage.add_catalog_entry(CatalogKind.PRODUCT, entry)
        storage.add_document(sale_invoice, apply_stock=False)
        with pytest.raises(PersistenceError, match="get_items") as exc_info:
            await _sale(storage)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    async def test_invalid_record(self, products: list, sale_invoice: Document) -> None:
        storage = CorruptStorage(today=TODAY)
        for entry in products:
            storage.add_catalog_entry(CatalogKind.PRODUCT, entry)
        storage.add_document(sale_invoice, apply_stock=False)
        with pytest.raises(PersistenceError, match="Versement invalide"):
            await _sale(storage)

    async def test_item_name_from_alias(self, products: list, sale_invoice: Document) -> None:
        """Une ligne lue sous la clé ``p_id`` retrouve sa désignation."""
        storage = AliasStorage(today=TODAY)
        for entry in products:
            storage.add_catalog_entry(CatalogKind.PRODUCT, entry)
        storage.add_document(sale_invoice, apply_stock=False)
        session = await _sale(storage)
        assert [(item.ref_id, item.name) for item in session.items] == [(10, "Gâteau")]


class TestEditDocument:
    """Modification des champs du document."""

    async def test_save_edit(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        session.begin_edit()
        document = await session.save_edit(
            description="Commande du 20 avril",
            payment_method="Virement",
            remise="10",
        )
        assert document.remise == D("10.00")
        assert document.payment_method == "Virement"
        assert document.issue_date == date(2024, 4, 20)
        assert session.post_discount_total == D("900.00")
        assert session.discount_amount == D("100.00")
        assert session.editing is False

        record = await populated_storage.get_document(DocumentKind.SALE, 1)
        assert record["remise"] == D("10.00")
        assert record["description"] == "Commande du 20 avril"

    async def test_remise_above_payments_bound(self, populated_storage: MemoryStorage) -> None:
        """Paiements 500 sur 1000 : 55 % refusé, aucun appel de persistance."""
        session = await _sale(populated_storage)
        session.begin_edit()
        with pytest.raises(RemiseTooHighError):
            await session.save_edit(remise=D("55"))
        assert session.document.remise == D("0")
        assert session.editing is True
        record = await populated_storage.get_document(DocumentKind.SALE, 1)
        assert record["remise"] == D("0")

    async def test_bl_cap(self, populated_storage: MemoryStorage) -> None:
        session = await _purchase(populated_storage)
        session.begin_edit()
        with pytest.raises(RemiseTooHighError):
            await session.save_edit(remise="50.01")
        assert (await session.save_edit(remise="50")).remise == D("50.00")

    async def test_payment_method_required(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        session.begin_edit()
        with pytest.raises(RequiredFieldError):
            await session.save_edit(payment_method="   ")

    async def test_requires_begin(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        with pytest.raises(TransitionError, match="Aucune modification"):
            await session.save_edit(remise="5")

    async def test_cancel_edit(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        session.begin_edit()
        session.cancel_edit()
        assert session.editing is False

    async def test_persistence_failure_keeps_snapshot(
        self, populated_storage: MemoryStorage
    ) -> None:
        session = await _sale(populated_storage)
        session.begin_edit()
        populated_storage.fail_on.add("update_document")
        with pytest.raises(PersistenceError):
            await session.save_edit(remise="5")
        assert session.document.remise == D("0")


class TestEditItems:
    """Modification des lignes."""

    async def test_purchase_round_trip(self, populated_storage: MemoryStorage) -> None:
        session = await _purchase(populated_storage)
        session.begin_items_edit()
        session.add_item()
        session.update_item(3, "quantity", 2)
        assert session.subtotal == D("47.00")
        assert session.document.total == D("31.00")

        document = await session.save_items()
        assert document.total == D("47.00")
        assert session.committed_items == session.items
        assert session.editing_items is False
        # beurre reçu : stock relu depuis la persistance
        butter = next(entry for entry in session.catalog if entry.id == 3)
        assert butter.quantity == D("12")

    async def test_revert(self, populated_storage: MemoryStorage) -> None:
        session = await _purchase(populated_storage)
        session.begin_items_edit()
        session.remove_item(1)
        session.revert_items()
        assert [item.ref_id for item in session.items] == [1, 2]
        assert session.editing_items is False

    async def test_requires_begin(self, populated_storage: MemoryStorage) -> None:
        session = await _purchase(populated_storage)
        with pytest.raises(TransitionError):
            session.add_item()

    async def test_requires_finalized(
        self, storage: MemoryStorage, purchase_bl: Document
    ) -> None:
        storage.add_document(purchase_bl.model_copy(update={"finalized": False}))
        session = await _purchase(storage)
        with pytest.raises(TransitionError, match="finalisés"):
            session.begin_items_edit()

    async def test_sale_over_stock(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        session.begin_items_edit()
        session.update_item(10, "quantity", 41)
        assert session.sale_quantity_errors()
        with pytest.raises(SaleQuantityError):
            await session.save_items()
        assert populated_storage.stock_of(CatalogKind.PRODUCT, 10) == D("20")

    async def test_sale_up_to_stock(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        session.begin_items_edit()
        session.update_item(10, "quantity", 40)
        await session.save_items()
        assert populated_storage.stock_of(CatalogKind.PRODUCT, 10) == D("0")

    async def test_total_below_payments(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        session.begin_items_edit()
        session.update_item(10, "quantity", 5)
        with pytest.raises(BelowPaymentsError):
            await session.save_items()
        assert session.document.total == D("1000.00")


class TestEditVersements:
    """Saisie des versements."""

    async def test_add_and_save(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        session.begin_versements_edit()
        session.add_versement()
        session.update_versement_amount(3, "100")
        saved = await session.save_versements()

        assert [(v.number, v.amount) for v in saved] == [
            (1, D("300.00")),
            (2, D("200.00")),
            (3, D("100")),
        ]
        assert session.committed_versements == saved
        assert session.total_paid == D("600.00")
        assert session.editing_versements is False

    async def test_locked_versement(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        session.begin_versements_edit()
        with pytest.raises(VersementLockedError):
            session.update_versement_amount(1, "10")
        with pytest.raises(VersementLockedError):
            session.remove_versement(1)
        assert len(session.versements) == 2

    async def test_clear_balance(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        session.begin_versements_edit()
        session.clear_balance()
        assert session.remaining == D("0.00")
        await session.save_versements()
        assert session.is_fully_paid

    async def test_month_rollover_keeps_unsaved(self, populated_storage: MemoryStorage) -> None:
        """Versement saisi en mai, enregistré en juin : il n'est pas perdu."""
        session = await _sale(populated_storage)
        session.begin_versements_edit()
        session.add_versement()
        session.update_versement_date(3, date(2024, 5, 30))

        session.today = NEXT_MONTH
        populated_storage.today = NEXT_MONTH
        saved = await session.save_versements()
        assert [v.payment_date for v in saved] == [
            date(2024, 4, 25),
            date(2024, 5, 2),
            date(2024, 5, 30),
        ]

    async def test_save_all_mode(self, populated_storage: MemoryStorage) -> None:
        conf.configure(VERSEMENT_SAVE_MODE="all")
        session = await _sale(populated_storage)
        session.begin_versements_edit()
        session.add_versement()
        saved = await session.save_versements()
        assert len(saved) == 3

    async def test_revert(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        session.begin_versements_edit()
        session.add_versement()
        session.revert_versements()
        assert session.versements == session.committed_versements

    @pytest.mark.parametrize("amount", ["abc", "NaN", "Infinity", "-Infinity"])
    async def test_invalid_amount(self, populated_storage: MemoryStorage, amount: str) -> None:
        session = await _sale(populated_storage)
        session.begin_versements_edit()
        with pytest.raises(InvalidAmountError):
            session.update_versement_amount(2, amount)
        assert session.versements == session.committed_versements

    async def test_remise_checked_against_unsaved_versements(
        self, populated_storage: MemoryStorage
    ) -> None:
        """950 saisis sur 1000 : une remise de 40 % est refusée avant l'enregistrement."""
        session = await _sale(populated_storage)
        session.begin_versements_edit()
        session.add_versement()
        session.update_versement_amount(3, "450.00")
        assert session.max_allowed_remise == D("5")

        session.begin_edit()
        with pytest.raises(RemiseTooHighError):
            await session.save_edit(payment_method="Espèces", remise="40")
        record = await populated_storage.get_document(DocumentKind.SALE, 1)
        assert record["remise"] == D("0")

        saved = await session.save_versements()
        assert len(saved) == 3
        assert session.total_paid == D("950.00")
        assert session.total_paid <= session.post_discount_total

    async def test_items_checked_against_unsaved_versements(
        self, populated_storage: MemoryStorage
    ) -> None:
        session = await _sale(populated_storage)
        session.begin_versements_edit()
        session.add_versement()
        session.update_versement_amount(3, "450.00")

        session.begin_items_edit()
        session.update_item(10, "quantity", 18)
        with pytest.raises(BelowPaymentsError):
            await session.save_items()
        assert session.document.total == D("1000.00")

    async def test_save_rechecks_total(self, populated_storage: MemoryStorage) -> None:
        """Le total après remise a baissé depuis la saisie : rien n'est transmis."""
        session = await _sale(populated_storage)
        session.begin_versements_edit()
        session.add_versement()
        session.update_versement_amount(3, "450.00")
        session.document = session.document.model_copy(update={"remise": D("40")})

        with pytest.raises(ExceedsTotalError) as exc_info:
            await session.save_versements()
        assert exc_info.value.expected == D("600.00")
        assert exc_info.value.actual == D("950.00")
        assert len(await populated_storage.get_versements(DocumentKind.SALE, 1)) == 2
        assert session.editing_versements is True

    async def test_persistence_failure(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        session.begin_versements_edit()
        session.add_versement()
        populated_storage.fail_on.add("save_versements")
        with pytest.raises(PersistenceError):
            await session.save_versements()
        assert len(session.versements) == 3
        assert len(session.committed_versements) == 2
        assert session.editing_versements is True


class TestLifecycleActions:
    """Annulation, finalisation et suppression."""

    async def test_cancel_requires_confirmation(self, populated_storage: MemoryStorage) -> None:
        session = await _sale(populated_storage)
        with pytest.raises(ConfirmationRequiredError):
            await session.cancel()
        record = await populated_storage.get_document(DocumentKind.SALE, 1)
        assert record["status"] == DocumentStatus.APPROVED

    async def test_cancel_returns_stock(
        self, populated_storage: MemoryStorage, caplog: pytest.LogCaptureFixture
    ) -> None:
        session = await _sale(populated_storage)
        with caplog.at_level("INFO"):
            document = await session.cancel(confirmed=True)
        assert document.status == DocumentStatus.CANCELLED
        assert session.catalog[0].quantity == D("40")
        assert "annulé" in caplog.text
        with pytest.raises(TransitionError):
            session.begin_edit()

    async def test_finalize(self, storage: MemoryStorage, purchase_bl: Document) -> None:
        storage.add_document(purchase_bl.model_copy(update={"finalized": False}))
        session = await _purchase(storage)
        document = await session.finalize()
        assert document.finalized is True
        assert (await storage.get_document(DocumentKind.PURCHASE, 2))["finalized"] is True
        with pytest.raises(TransitionError):
            await session.finalize()

    async def test_finalize_failure_keeps_state(
        self, storage: MemoryStorage, purchase_bl: Document
    ) -> None:
        storage.add_document(purchase_bl.model_copy(update={"finalized": False}))
        session = await _purchase(storage)
        storage.fail_on.add("finalize_document")
        with pytest.raises(PersistenceError):
            await session.finalize()
        assert session.document.finalized is False
        assert session.lifecycle.finalized is False

    async def test_delete_latest(self, populated_storage: MemoryStorage) -> None:
        session = await _purchase(populated_storage)
        await session.delete(confirmed=True)
        assert not populated_storage.has_document(DocumentKind.PURCHASE, 2)
        assert populated_storage.stock_of(CatalogKind.RAW_MATERIAL, 1) == D("90")
        assert session.document.status == DocumentStatus.DELETED
        assert session.lifecycle.is_terminal()

    async def test_delete_not_latest(
        self, populated_storage: MemoryStorage, purchase_bl: Document
    ) -> None:
        newer = purchase_bl.model_copy(update={"id": 3, "code": 4})
        populated_storage.add_document(newer, apply_stock=False)
        session = await _purchase(populated_storage)
        with pytest.raises(NotLatestDocumentError):
            await session.delete(confirmed=True)
        assert populated_storage.has_document(DocumentKind.PURCHASE, 2)
        assert session.document.status == DocumentStatus.APPROVED

    async def test_delete_other_counterparty_ignored(
        self, populated_storage: MemoryStorage, purchase_bl: Document
    ) -> None:
        other = purchase_bl.model_copy(update={"id": 3, "code": 9, "counterparty_id": 5})
        populated_storage.add_document(other, apply_stock=False)
        session = await _purchase(populated_storage)
        await session.delete(confirmed=True)
        assert not populated_storage.has_document(DocumentKind.PURCHASE, 2)

    async def test_delete_after_cancel(self, populated_storage: MemoryStorage) -> None:
        session = await _purchase(populated_storage)
        await session.cancel(confirmed=True)
        await session.delete(confirmed=True)
        assert populated_storage.stock_of(CatalogKind.RAW_MATERIAL, 1) == D("90")

    async def test_delete_requires_confirmation(self, populated_storage: MemoryStorage) -> None:
        session = await _purchase(populated_storage)
        with pytest.raises(ConfirmationRequiredError):
            await session.delete()
        assert populated_storage.has_document(DocumentKind.PURCHASE, 2)
