"""
Catalog Store

The single source of truth for ingredients, categories, recipes and recipe
line items. Every write is validated here, ends in exactly one commit, and
is announced to subscribers once it is durable.

References between records are plain ids. A recipe's line items are the
rows whose recipe_id points at it; nothing stores the reverse link.
"""

import logging
from collections import namedtuple

from sqlalchemy.exc import SQLAlchemyError

from constants import (
    MIN_SERVINGS, MAX_SERVINGS, MIN_TIME_MINUTES, MAX_TIME_MINUTES,
    TIME_STEP_MINUTES, MAX_LENGTHS, MAX_IMAGE_BYTES, MISSING_NAME,
)
from models import db, Category, Ingredient, Recipe, RecipeIngredient
from utils.sanitizer import (
    sanitize_name, sanitize_text, sanitize_quantity, normalize_name
)

from .errors import (
    DuplicateNameError, InvalidRecordError, PersistenceError, RecordNotFoundError
)

logger = logging.getLogger(__name__)


# Emitted to subscribers after each successful commit
Change = namedtuple('Change', ['action', 'model', 'ids'])


class MissingRecord:
    """Stand-in for a reference whose target no longer exists."""
    id = None
    name = MISSING_NAME

    def __bool__(self):
        return False

    def __repr__(self):
        return '<MissingRecord>'


MISSING = MissingRecord()


# Model -> (display kind, max name length)
NAMED_MODELS = {
    Ingredient: ('Ingredient', MAX_LENGTHS['ingredient_name']),
    Category: ('Category', MAX_LENGTHS['category_name']),
    Recipe: ('Recipe', MAX_LENGTHS['recipe_name']),
}

# Writable fields per model
WRITABLE_FIELDS = {
    Ingredient: {'name', 'is_available'},
    Category: {'name'},
    Recipe: {
        'name', 'summary', 'category_id', 'servings', 'time_minutes',
        'instructions', 'image_data',
    },
    RecipeIngredient: {'recipe_id', 'ingredient_id', 'quantity'},
}

# Foreign key field -> referenced model
REFERENCES = {
    'category_id': Category,
    'ingredient_id': Ingredient,
    'recipe_id': Recipe,
}


def _kind(model):
    return NAMED_MODELS[model][0] if model in NAMED_MODELS else model.__name__


def _check_length(field, value, max_length):
    if len(value) > max_length:
        raise InvalidRecordError(f'{field} is too long: {len(value)} characters (max {max_length})')
    return value


def _check_int(field, value, low, high, step=None):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRecordError(f'{field} must be a whole number')
    if value < low or value > high:
        raise InvalidRecordError(f'{field} must be between {low} and {high}')
    if step and (value - low) % step:
        raise InvalidRecordError(f'{field} must be a multiple of {step}')
    return value


class CatalogStore:
    """CRUD over the four catalog record types with integrity checks."""

    def __init__(self, session=None):
        self._session = session
        self._listeners = []

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_all(self, model):
        """All records of a type, in insertion (id) order."""
        return self.session.query(model).order_by(model.id).all()

    def find(self, model, predicate):
        """Linear-scan filter over list_all()."""
        return [record for record in self.list_all(model) if predicate(record)]

    def get(self, model, record_id):
        if record_id is None:
            return None
        return self.session.get(model, record_id)

    def exists(self, model, record_id):
        return self.get(model, record_id) is not None

    def resolve(self, model, record_id):
        """Look up a reference, returning MISSING instead of raising."""
        record = self.get(model, record_id)
        if record is None:
            if record_id is not None:
                logger.debug('Dangling %s reference %s', model.__name__, record_id)
            return MISSING
        return record

    def require(self, model, record_id):
        record = self.get(model, record_id)
        if record is None:
            raise RecordNotFoundError(_kind(model), record_id)
        return record

    def line_items(self, recipe_id):
        """Line items owned by a recipe, in the order they were added."""
        return self.find(RecipeIngredient, lambda ri: ri.recipe_id == recipe_id)

    def ingredient_name(self, line_item):
        """Display name for a line item; 'unknown' once its ingredient is gone."""
        return self.resolve(Ingredient, line_item.ingredient_id).name

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def check_unique_name(self, model, name, exclude_id=None):
        """Raise DuplicateNameError if another record of the type has this name."""
        key = normalize_name(name)
        for record in self.list_all(model):
            if record.id == exclude_id:
                continue
            if normalize_name(record.name) == key:
                logger.info('Rejected duplicate %s name "%s"', _kind(model), name)
                raise DuplicateNameError(_kind(model), name)

    def validate(self, model, fields, record_id=None, creating=False):
        """
        Clean and check field values for a create or update.

        Args:
            model: The model class being written
            fields: Mapping of field name to raw value
            record_id: Id of the record under edit (excluded from uniqueness)
            creating: Require the fields a new record cannot do without

        Returns:
            dict: Cleaned field values, ready to assign

        Raises:
            InvalidRecordError: Unknown field, blank name or out-of-range value
            RecordNotFoundError: A referenced id does not exist
            DuplicateNameError: The name collides with another record
        """
        unknown = set(fields) - WRITABLE_FIELDS[model]
        if unknown:
            raise InvalidRecordError(f'Unknown field(s): {", ".join(sorted(unknown))}')

        cleaned = {}
        for field, value in fields.items():
            cleaned[field] = self._clean_field(model, field, value)

        if creating and model in NAMED_MODELS and 'name' not in cleaned:
            raise InvalidRecordError(f'{_kind(model)} name is required')
        if creating and model is Recipe and 'instructions' not in cleaned:
            raise InvalidRecordError('Recipe instructions are required')

        if 'name' in cleaned:
            self.check_unique_name(model, cleaned['name'], exclude_id=record_id)

        return cleaned

    def _clean_field(self, model, field, value):
        if field == 'name':
            kind, max_length = NAMED_MODELS[model]
            name = _check_length(f'{kind} name', sanitize_name(value), max_length)
            if not name:
                raise InvalidRecordError(f'{kind} name is required')
            return name

        if field == 'is_available':
            if not isinstance(value, bool):
                raise InvalidRecordError('is_available must be true or false')
            return value

        if field == 'summary':
            return _check_length('summary', sanitize_text(value), MAX_LENGTHS['summary'])

        if field == 'instructions':
            instructions = _check_length('instructions', sanitize_text(value),
                                         MAX_LENGTHS['instructions'])
            if not instructions.strip():
                raise InvalidRecordError('Recipe instructions are required')
            return instructions

        if field == 'servings':
            return _check_int('servings', value, MIN_SERVINGS, MAX_SERVINGS)

        if field == 'time_minutes':
            return _check_int('time_minutes', value, MIN_TIME_MINUTES,
                              MAX_TIME_MINUTES, step=TIME_STEP_MINUTES)

        if field == 'image_data':
            if value is None:
                return None
            if not isinstance(value, (bytes, bytearray)):
                raise InvalidRecordError('image_data must be bytes')
            if len(value) > MAX_IMAGE_BYTES:
                raise InvalidRecordError(
                    f'Image too large: {len(value)} bytes (max {MAX_IMAGE_BYTES})'
                )
            return bytes(value)

        if field == 'quantity':
            return _check_length('quantity', sanitize_quantity(value), MAX_LENGTHS['quantity'])

        if field in REFERENCES:
            if value is None:
                return None
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidRecordError(f'{field} must be an id')
            target = REFERENCES[field]
            if not self.exists(target, value):
                raise RecordNotFoundError(_kind(target), value)
            return value

        return value

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, model, **fields):
        """Validate, insert and commit a new record. Returns the record."""
        cleaned = self.validate(model, fields, creating=True)
        record = model(**cleaned)
        self.session.add(record)
        self.commit('create', model, [record])
        return record

    def update(self, model, record_id, **changes):
        """Validate and apply field changes to an existing record, then commit."""
        record = self.require(model, record_id)
        cleaned = self.validate(model, changes, record_id=record_id)
        for field, value in cleaned.items():
            setattr(record, field, value)
        self.commit('update', model, [record])
        return record

    def delete(self, model, record_id):
        """
        Remove a record and apply its deletion rules, then commit.

        Recipe: its line items are deleted with it.
        Category: recipes in it keep existing with no category.
        Ingredient: line items using it keep existing with no ingredient.
        """
        record = self.require(model, record_id)
        try:
            if model is Recipe:
                for line in self.line_items(record_id):
                    self.session.delete(line)
            elif model is Category:
                for recipe in self.find(Recipe, lambda r: r.category_id == record_id):
                    recipe.category_id = None
            elif model is Ingredient:
                for line in self.find(RecipeIngredient, lambda ri: ri.ingredient_id == record_id):
                    line.ingredient_id = None
            # Dependents first so the parent row is unreferenced when it goes
            self.session.flush()
            self.session.delete(record)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception('Failed to stage delete of %s %s', model.__name__, record_id)
            raise PersistenceError(f'Could not delete {_kind(model)}: {e}') from e
        self.commit('delete', model, [record])

    def commit(self, action, model, records=()):
        """
        Durably commit every pending change as one unit.

        On failure the session is rolled back so no part of the action is
        kept, and PersistenceError is raised. Subscribers are notified only
        after the commit succeeds.
        """
        try:
            self.session.flush()
            ids = tuple(record.id for record in records)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception('Commit failed (%s %s)', action, model.__name__)
            raise PersistenceError(f'Could not save changes: {e}') from e

        logger.debug('Committed %s %s %s', action, model.__name__, ids)
        self._notify(Change(action, model, ids))

    def rollback(self):
        self.session.rollback()

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, callback):
        """
        Call callback(change) after every successful commit.

        Returns a function that removes the subscription.
        """
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, change):
        for callback in list(self._listeners):
            try:
                callback(change)
            except Exception:
                logger.exception('Change subscriber %r failed', callback)
