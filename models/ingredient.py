"""
Ingredient Model

Contains the Ingredient model. Availability drives the shopping list.
"""

from .base import db


class Ingredient(db.Model):
    """Catalog ingredient; unavailable ones show up on the shopping list."""
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), unique=True, nullable=False, index=True)
    is_available = db.Column(db.Boolean, nullable=False, default=True, index=True)

    def __repr__(self):
        return f"<Ingredient(id={self.id}, name={self.name})>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'is_available': self.is_available,
        }
