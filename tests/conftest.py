"""Fixtures partagées pour les tests gescom."""

from collections.abc import Iterator
from datetime import date
from decimal import Decimal

import pytest

from gescom import conf
from gescom.models.catalog import CatalogEntry, RecipeLine
from gescom.models.document import Document, LineItem
from gescom.models.enums import CatalogKind, DocumentKind, DocumentType
from gescom.models.versement import Versement
from gescom.storage.connectors.memory import MemoryStorage

# Mi-mai 2024 : les versements de mai sont ouverts, ceux d'avril verrouillés
TODAY = date(2024, 5, 15)
NEXT_MONTH = date(2024, 6, 3)


@pytest.fixture(autouse=True)
def _reset_settings() -> Iterator[None]:
    """Isole les surcharges de configuration entre les tests."""
    conf.reset()
    yield
    conf.reset()


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def raw_materials() -> list[CatalogEntry]:
    """Matières premières : farine, sucre, beurre."""
    return [
        CatalogEntry(id=1, name="Farine", quantity=Decimal("100"), unit_price=Decimal("2.50")),
        CatalogEntry(id=2, name="Sucre", quantity=Decimal("50"), unit_price=Decimal("1.20")),
        CatalogEntry(
            id=3,
            name="Beurre",
            quantity=Decimal("10"),
            unit_price=Decimal("8.00"),
            threshold=Decimal("5"),
        ),
    ]


@pytest.fixture
def products() -> list[CatalogEntry]:
    """Produits finis : gâteau (en stock) et tarte (épuisée)."""
    return [
        CatalogEntry(id=10, name="Gâteau", quantity=Decimal("20"), unit_price=Decimal("50.00")),
        CatalogEntry(id=11, name="Tarte", quantity=Decimal("0"), unit_price=Decimal("20.00")),
    ]


@pytest.fixture
def recipe() -> list[RecipeLine]:
    """Recette du gâteau : 2 farine, 1 sucre, 0,5 beurre par unité."""
    return [
        RecipeLine(raw_material_id=1, raw_material_name="Farine", quantity=Decimal("2")),
        RecipeLine(raw_material_id=2, raw_material_name="Sucre", quantity=Decimal("1")),
        RecipeLine(raw_material_id=3, raw_material_name="Beurre", quantity=Decimal("0.5")),
    ]


@pytest.fixture
def sale_invoice() -> Document:
    """Facture de vente finalisée de 1000 DA (20 gâteaux à 50 DA)."""
    return Document(
        id=1,
        kind=DocumentKind.SALE,
        doc_type=DocumentType.INVOICE,
        code=1,
        issue_date=date(2024, 4, 20),
        counterparty_id=7,
        counterparty_name="Boulangerie Amrani",
        payment_method="Espèces",
        total=Decimal("1000.00"),
        finalized=True,
    )


@pytest.fixture
def sale_items() -> list[LineItem]:
    return [
        LineItem(ref_id=10, name="Gâteau", quantity=Decimal("20"), unit_price=Decimal("50.00")),
    ]


@pytest.fixture
def sale_versements() -> list[Versement]:
    """Un versement d'avril (verrouillé) et un de mai (ouvert)."""
    return [
        Versement(number=1, amount=Decimal("300.00"), payment_date=date(2024, 4, 25)),
        Versement(number=2, amount=Decimal("200.00"), payment_date=date(2024, 5, 2)),
    ]


@pytest.fixture
def purchase_bl() -> Document:
    """BL d'achat finalisé : 10 farine à 2,50 DA et 5 sucre à 1,20 DA."""
    return Document(
        id=2,
        kind=DocumentKind.PURCHASE,
        doc_type=DocumentType.BL,
        code=3,
        issue_date=date(2024, 5, 6),
        counterparty_id=4,
        counterparty_name="Minoterie du Sud",
        payment_method="Chèque",
        total=Decimal("31.00"),
        finalized=True,
    )


@pytest.fixture
def purchase_items() -> list[LineItem]:
    return [
        LineItem(ref_id=1, name="Farine", quantity=Decimal("10"), unit_price=Decimal("2.50")),
        LineItem(ref_id=2, name="Sucre", quantity=Decimal("5"), unit_price=Decimal("1.20")),
    ]


@pytest.fixture
def storage(
    raw_materials: list[CatalogEntry],
    products: list[CatalogEntry],
    recipe: list[RecipeLine],
) -> MemoryStorage:
    """Stockage mémoire avec catalogues et recette, sans document."""
    memory = MemoryStorage(today=TODAY)
    for entry in raw_materials:
        memory.add_catalog_entry(CatalogKind.RAW_MATERIAL, entry)
    for entry in products:
        memory.add_catalog_entry(CatalogKind.PRODUCT, entry)
    memory.set_recipe(10, recipe)
    return memory


@pytest.fixture
def populated_storage(
    storage: MemoryStorage,
    sale_invoice: Document,
    sale_items: list[LineItem],
    sale_versements: list[Versement],
    purchase_bl: Document,
    purchase_items: list[LineItem],
) -> MemoryStorage:
    """Stockage avec une facture de vente et un BL d'achat.

    Les documents sont enregistrés sans mouvement de stock : les quantités
    des catalogues restent celles des fixtures.
    """
    storage.add_document(sale_invoice, sale_items, sale_versements, apply_stock=False)
    storage.add_document(purchase_bl, purchase_items, apply_stock=False)
    return storage
