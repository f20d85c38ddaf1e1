"""Production par recette : faisabilité, coût, marge et consommations."""

from gescom.production.calculator import (
    can_produce,
    expected_profit,
    max_producible,
    produce,
    production_cost,
    profit_margin,
    stock_index,
)
from gescom.production.recipe import add_recipe_line, remove_recipe_line, update_recipe_line

__all__ = [
    "add_recipe_line",
    "can_produce",
    "expected_profit",
    "max_producible",
    "produce",
    "production_cost",
    "profit_margin",
    "remove_recipe_line",
    "stock_index",
    "update_recipe_line",
]
