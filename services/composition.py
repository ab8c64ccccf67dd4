"""
Recipe Composition

A RecipeDraft holds a recipe's fields and its ordered line items in memory
while the user edits them. Nothing reaches the store until save(), which
writes the recipe and every line item change in a single commit.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from constants import DEFAULT_SERVINGS, DEFAULT_TIME_MINUTES
from models import Ingredient, Recipe, RecipeIngredient

from .errors import InvalidRecordError, PersistenceError, RecordNotFoundError

logger = logging.getLogger(__name__)


RECIPE_FIELDS = (
    'name', 'summary', 'category_id', 'servings', 'time_minutes',
    'instructions', 'image_data',
)


@dataclass
class DraftLine:
    """One staged line item. line_id is set once the line has been saved."""
    ingredient_id: Optional[int]
    quantity: str = ''
    line_id: Optional[int] = None

    @property
    def is_persisted(self):
        return self.line_id is not None


class RecipeDraft:
    """In-memory recipe under composition, in add or edit mode."""

    def __init__(self, store, recipe_id=None, fields=None, lines=None):
        self.store = store
        self.recipe_id = recipe_id
        self.fields = dict(fields or {})
        self.lines = list(lines or [])
        # Saved lines dropped by remove_line(); save() deletes these
        self.removed = []

    @classmethod
    def new(cls, store):
        """Start a draft for a recipe that does not exist yet."""
        return cls(store, fields={
            'name': '',
            'summary': '',
            'category_id': None,
            'servings': DEFAULT_SERVINGS,
            'time_minutes': DEFAULT_TIME_MINUTES,
            'instructions': '',
            'image_data': None,
        })

    @classmethod
    def for_recipe(cls, store, recipe_id):
        """Start a draft from a saved recipe and its current line items."""
        recipe = store.require(Recipe, recipe_id)
        fields = {field: getattr(recipe, field) for field in RECIPE_FIELDS}
        lines = [
            DraftLine(ingredient_id=ri.ingredient_id, quantity=ri.quantity, line_id=ri.id)
            for ri in store.line_items(recipe_id)
        ]
        return cls(store, recipe_id=recipe_id, fields=fields, lines=lines)

    @property
    def is_new(self):
        return self.recipe_id is None

    def set(self, **fields):
        """Stage recipe field values. Validation happens on save()."""
        unknown = set(fields) - set(RECIPE_FIELDS)
        if unknown:
            raise InvalidRecordError(f'Unknown field(s): {", ".join(sorted(unknown))}')
        self.fields.update(fields)

    def add_ingredient(self, ingredient_id, quantity=''):
        """Append a line for the chosen ingredient. The quantity is free text."""
        if not self.store.exists(Ingredient, ingredient_id):
            raise RecordNotFoundError('Ingredient', ingredient_id)
        line = DraftLine(ingredient_id=ingredient_id, quantity=quantity or '')
        self.lines.append(line)
        return line

    def remove_line(self, index):
        """Drop the line at index; a saved line is queued for deletion."""
        try:
            line = self.lines.pop(index)
        except IndexError:
            raise InvalidRecordError(f'No ingredient line at position {index}')
        if line.is_persisted:
            self.removed.append(line)
        return line

    def set_quantity(self, index, quantity):
        try:
            self.lines[index].quantity = quantity or ''
        except IndexError:
            raise InvalidRecordError(f'No ingredient line at position {index}')

    def save(self):
        """
        Write the recipe and its line items in one commit.

        Add mode creates the recipe first, then links every line to it.
        Edit mode deletes the saved lines queued by remove_line(), adds new
        lines, and updates quantities of the lines it kept. A kept line keeps
        its ingredient link as stored, even if that ingredient is gone.

        On any error nothing is written and the draft stays as it was.

        Returns:
            Recipe: The saved recipe
        """
        store = self.store
        cleaned = store.validate(
            Recipe, self.fields, record_id=self.recipe_id, creating=self.is_new
        )
        lines = []
        for line in self.lines:
            row = self._saved_row(line)
            if row is not None:
                values = store.validate(RecipeIngredient, {'quantity': line.quantity})
            else:
                values = store.validate(RecipeIngredient, {
                    'ingredient_id': line.ingredient_id,
                    'quantity': line.quantity,
                })
            lines.append((line, row, values))

        session = store.session
        try:
            if self.is_new:
                recipe = Recipe(**cleaned)
                session.add(recipe)
                session.flush()
            else:
                recipe = store.require(Recipe, self.recipe_id)
                for field, value in cleaned.items():
                    setattr(recipe, field, value)

                for line in self.removed:
                    existing = self._saved_row(line)
                    if existing is not None:
                        session.delete(existing)

            new_rows = []
            for line, row, values in lines:
                if row is None:
                    row = RecipeIngredient(recipe_id=recipe.id, **values)
                    session.add(row)
                    new_rows.append((line, row))
                else:
                    row.quantity = values['quantity']
        except SQLAlchemyError as e:
            store.rollback()
            logger.exception('Failed to stage recipe %s', self.recipe_id)
            raise PersistenceError(f'Could not save recipe: {e}') from e
        except Exception:
            store.rollback()
            raise

        store.commit('create' if self.is_new else 'update', Recipe, [recipe])

        # Only now does the draft reflect what was saved
        for line, row in new_rows:
            line.line_id = row.id
        for line, row, _ in lines:
            if row is not None:
                line.ingredient_id = row.ingredient_id
        self.recipe_id = recipe.id
        self.removed = []
        logger.debug('Saved recipe %s with %d line(s)', recipe.id, len(self.lines))
        return recipe

    def _saved_row(self, line):
        """The stored row behind a persisted line of this recipe, or None."""
        if self.is_new or not line.is_persisted:
            return None
        row = self.store.get(RecipeIngredient, line.line_id)
        if row is None or row.recipe_id != self.recipe_id:
            return None
        return row
