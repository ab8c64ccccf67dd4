"""
Models Package

Exports all database models and the db instance for use throughout the application.
"""

from .base import db

from .ingredient import Ingredient
from .category import Category
from .recipe import Recipe, RecipeIngredient

__all__ = [
    'db',
    'Ingredient',
    'Category',
    'Recipe',
    'RecipeIngredient',
]
