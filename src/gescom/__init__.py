"""gescom : moteur de documents commerciaux et de rapprochement des paiements.

FR: Achats et ventes (BL, factures), lignes, remise, versements, cycle de
    vie des documents et production par recette.
EN: Purchases and sales (delivery notes, invoices), line items, discount,
    installment payments, document lifecycle and recipe production.
"""

__version__ = "0.1.0"
