"""
Recipe Models

Contains the Recipe and RecipeIngredient models. References between them
are plain id columns; a recipe's line items are looked up by recipe_id
rather than held as a relationship.
"""

from .base import db


class Recipe(db.Model):
    """Recipe with metadata, an optional category and an optional image."""
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), unique=True, nullable=False, index=True)
    summary = db.Column(db.Text, nullable=False, default='')
    category_id = db.Column(db.Integer, db.ForeignKey('category.id', ondelete='SET NULL'), nullable=True, index=True)
    servings = db.Column(db.Integer, nullable=False, default=1)
    time_minutes = db.Column(db.Integer, nullable=False, default=5)
    instructions = db.Column(db.Text, nullable=False, default='')
    image_data = db.Column(db.LargeBinary, nullable=True)

    def __repr__(self):
        return f"<Recipe(id={self.id}, name={self.name})>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'summary': self.summary,
            'category_id': self.category_id,
            'servings': self.servings,
            'time_minutes': self.time_minutes,
            'instructions': self.instructions,
            'has_image': self.image_data is not None,
        }


class RecipeIngredient(db.Model):
    """One line of a recipe: an ingredient with a free-text quantity."""
    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey('recipe.id', ondelete='CASCADE'), nullable=True, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id', ondelete='SET NULL'), nullable=True, index=True)
    quantity = db.Column(db.String(100), nullable=False, default='')

    def __repr__(self):
        return f"<RecipeIngredient(id={self.id}, recipe_id={self.recipe_id}, ingredient_id={self.ingredient_id})>"

    def to_dict(self):
        return {
            'id': self.id,
            'recipe_id': self.recipe_id,
            'ingredient_id': self.ingredient_id,
            'quantity': self.quantity,
        }
