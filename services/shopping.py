"""
Shopping List Service

The shopping list is not stored anywhere: it is every ingredient currently
marked unavailable, read live from the catalog store.
"""

import logging

from models import Ingredient

logger = logging.getLogger(__name__)


def shopping_list(store):
    """Ingredients that need buying, in the order they were added."""
    return store.find(Ingredient, lambda ingredient: not ingredient.is_available)


def mark_available(store, ingredient_id):
    """Mark one ingredient as available, taking it off the shopping list."""
    return store.update(Ingredient, ingredient_id, is_available=True)


def mark_all_available(store):
    """
    Mark every unavailable ingredient as available in a single commit.

    Returns the number of ingredients changed; zero when the list was
    already empty.
    """
    missing = shopping_list(store)
    if not missing:
        return 0

    for ingredient in missing:
        ingredient.is_available = True
    store.commit('update', Ingredient, missing)
    logger.info('Marked %d ingredient(s) available', len(missing))
    return len(missing)
