"""
Services Package

Business logic modules for the recipe catalog.
"""

from .errors import (
    CatalogError,
    DuplicateNameError,
    InvalidRecordError,
    RecordNotFoundError,
    PersistenceError,
)

from .catalog import (
    CatalogStore,
    Change,
    MISSING,
    MissingRecord,
)

from .composition import (
    DraftLine,
    RecipeDraft,
)

from .shopping import (
    shopping_list,
    mark_available,
    mark_all_available,
)

from .grouping import (
    search_categories,
    recipes_in_category,
    group_by_category,
)

__all__ = [
    # Errors
    'CatalogError',
    'DuplicateNameError',
    'InvalidRecordError',
    'RecordNotFoundError',
    'PersistenceError',
    # Store
    'CatalogStore',
    'Change',
    'MISSING',
    'MissingRecord',
    # Composition
    'DraftLine',
    'RecipeDraft',
    # Shopping
    'shopping_list',
    'mark_available',
    'mark_all_available',
    # Grouping
    'search_categories',
    'recipes_in_category',
    'group_by_category',
]
