"""
Category Model

Contains the Category model used to group recipes.
"""

from .base import db


class Category(db.Model):
    """Named recipe group. Recipes keep existing when their category goes."""
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False, index=True)

    def __repr__(self):
        return f"<Category(id={self.id}, name={self.name})>"

    def to_dict(self):
        return {'id': self.id, 'name': self.name}
