"""
Category Grouping

Read-only views that group recipes under their category, with an optional
name search over categories.
"""

from models import Category, Recipe
from utils.sanitizer import fold_for_search


def search_categories(store, query=''):
    """
    Categories whose name contains query, ignoring case and accents.

    A blank query returns every category.
    """
    needle = fold_for_search((query or '').strip())
    if not needle:
        return store.list_all(Category)
    return store.find(Category, lambda category: needle in fold_for_search(category.name))


def recipes_in_category(store, category_id):
    return store.find(Recipe, lambda recipe: recipe.category_id == category_id)


def group_by_category(store, query=''):
    """List of (category, recipes) pairs for the categories matching query."""
    recipes = store.list_all(Recipe)
    groups = []
    for category in search_categories(store, query):
        groups.append((category, [r for r in recipes if r.category_id == category.id]))
    return groups
