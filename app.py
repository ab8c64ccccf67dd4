"""
Recipe Catalog Application

Flask surface over the catalog services. Each route parses the submitted
fields, calls one catalog operation and returns JSON; all integrity rules
live in the services package.
"""

import base64
import binascii
import logging

from flask import Blueprint, Flask, Response, current_app, jsonify, request
from flask_migrate import Migrate

from config import get_config
from constants import (
    MIN_SERVINGS, MAX_SERVINGS, DEFAULT_SERVINGS,
    MIN_TIME_MINUTES, MAX_TIME_MINUTES, TIME_STEP_MINUTES, DEFAULT_TIME_MINUTES,
)
from models import db, Category, Ingredient, Recipe
from services import (
    CatalogError, CatalogStore, InvalidRecordError, PersistenceError, RecipeDraft,
    group_by_category, mark_all_available, mark_available, shopping_list,
)

logger = logging.getLogger(__name__)

migrate = Migrate()
bp = Blueprint('catalog', __name__)


def create_app(env=None):
    """Build the Flask app for the given environment name."""
    app = Flask(__name__)
    app.config.from_object(get_config(env))

    db.init_app(app)
    migrate.init_app(app, db)

    app.extensions['catalog'] = CatalogStore()
    app.register_blueprint(bp)
    app.register_error_handler(CatalogError, handle_catalog_error)
    return app


def get_store():
    return current_app.extensions['catalog']


def handle_catalog_error(error):
    if not isinstance(error, PersistenceError):
        logger.info('%s: %s', type(error).__name__, error)
    return jsonify({'error': str(error)}), error.status_code


# ============================================
# FORM PARSING HELPERS
# ============================================

def safe_int(value, default=1, min_val=None, max_val=None):
    """Safely parse an integer value with optional bounds."""
    try:
        result = int(value) if value not in (None, '') else default
        if min_val is not None:
            result = max(min_val, result)
        if max_val is not None:
            result = min(max_val, result)
        return result
    except (ValueError, TypeError):
        return default


def snap_time(value):
    """Clamp a time in minutes to its range and round to the nearest step."""
    minutes = safe_int(value, default=DEFAULT_TIME_MINUTES,
                       min_val=MIN_TIME_MINUTES, max_val=MAX_TIME_MINUTES)
    steps = round((minutes - MIN_TIME_MINUTES) / TIME_STEP_MINUTES)
    return MIN_TIME_MINUTES + steps * TIME_STEP_MINUTES


def parse_bool(value, field):
    """Accept JSON booleans and the usual form spellings ('1', 'true', ...)."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ('1', 'true', 'on', 'yes'):
        return True
    if text in ('0', 'false', 'off', 'no'):
        return False
    raise InvalidRecordError(f'{field} must be true or false')


def parse_id(value, field):
    """Parse an optional record id; blank means no reference."""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise InvalidRecordError(f'{field} must be an id')
    try:
        return int(value)
    except (ValueError, TypeError):
        raise InvalidRecordError(f'{field} must be an id')


def parse_image(value):
    """Unwrap a base64 image payload. The bytes themselves are stored as-is."""
    if value is None or value == '':
        return None
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError, TypeError):
        raise InvalidRecordError('image must be base64 encoded')


def request_data():
    """JSON body if there is one, otherwise the submitted form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


# ============================================
# SERIALIZATION
# ============================================

def recipe_summary(store, recipe):
    data = recipe.to_dict()
    data['category'] = (
        store.resolve(Category, recipe.category_id).name
        if recipe.category_id is not None else None
    )
    return data


def recipe_detail(store, recipe):
    data = recipe_summary(store, recipe)
    data['ingredients'] = [
        dict(ri.to_dict(), name=store.ingredient_name(ri))
        for ri in store.line_items(recipe.id)
    ]
    return data


# ============================================
# ROUTES - CATEGORIES
# ============================================

@bp.route('/categories')
def categories_list():
    store = get_store()
    groups = group_by_category(store, request.args.get('q', ''))
    return jsonify([
        dict(category.to_dict(), recipes=[recipe_summary(store, r) for r in recipes])
        for category, recipes in groups
    ])


@bp.route('/category/add', methods=['POST'])
def category_add():
    data = request_data()
    category = get_store().create(Category, name=data.get('name'))
    return jsonify(category.to_dict()), 201


@bp.route('/category/<int:id>/edit', methods=['POST'])
def category_edit(id):
    data = request_data()
    category = get_store().update(Category, id, name=data.get('name'))
    return jsonify(category.to_dict())


@bp.route('/category/<int:id>/delete', methods=['POST'])
def category_delete(id):
    get_store().delete(Category, id)
    return jsonify({'deleted': True})


# ============================================
# ROUTES - INGREDIENTS
# ============================================

@bp.route('/ingredients')
def ingredients_list():
    ingredients = get_store().list_all(Ingredient)
    return jsonify([ingredient.to_dict() for ingredient in ingredients])


@bp.route('/ingredient/add', methods=['POST'])
def ingredient_add():
    data = request_data()
    is_available = data.get('is_available')
    ingredient = get_store().create(
        Ingredient,
        name=data.get('name'),
        is_available=True if is_available is None else parse_bool(is_available, 'is_available'),
    )
    return jsonify(ingredient.to_dict()), 201


@bp.route('/ingredient/<int:id>/edit', methods=['POST'])
def ingredient_edit(id):
    data = request_data()
    # Fields that were not sent are left unchanged
    changes = {}
    if 'name' in data:
        changes['name'] = data['name']
    if data.get('is_available') is not None:
        changes['is_available'] = parse_bool(data['is_available'], 'is_available')
    ingredient = get_store().update(Ingredient, id, **changes)
    return jsonify(ingredient.to_dict())


@bp.route('/ingredient/<int:id>/delete', methods=['POST'])
def ingredient_delete(id):
    get_store().delete(Ingredient, id)
    return jsonify({'deleted': True})


# ============================================
# ROUTES - RECIPES
# ============================================

def apply_recipe_form(draft, data):
    """Copy submitted recipe fields and line items onto a draft."""
    fields = {}
    for key in ('name', 'summary', 'instructions'):
        if key in data:
            fields[key] = data[key]
    if 'category_id' in data:
        fields['category_id'] = parse_id(data['category_id'], 'category_id')
    if 'servings' in data:
        fields['servings'] = safe_int(data['servings'], default=DEFAULT_SERVINGS,
                                      min_val=MIN_SERVINGS, max_val=MAX_SERVINGS)
    if 'time_minutes' in data:
        fields['time_minutes'] = snap_time(data['time_minutes'])
    if 'image' in data:
        fields['image_data'] = parse_image(data['image'])
    draft.set(**fields)

    items = data.get('ingredients')
    if items is None:
        return
    if not isinstance(items, list):
        raise InvalidRecordError('ingredients must be a list')

    keep = {}
    for item in items:
        if not isinstance(item, dict):
            raise InvalidRecordError('each ingredient must be an object')
        line_id = parse_id(item.get('id'), 'id')
        if line_id is not None:
            keep[line_id] = item

    # Saved lines left out of the submission are removed
    for index in reversed(range(len(draft.lines))):
        if draft.lines[index].line_id not in keep:
            draft.remove_line(index)

    positions = {line.line_id: index for index, line in enumerate(draft.lines)}
    for item in items:
        line_id = parse_id(item.get('id'), 'id')
        if line_id is not None and line_id in positions:
            draft.set_quantity(positions[line_id], item.get('quantity', ''))
        else:
            ingredient_id = parse_id(item.get('ingredient_id'), 'ingredient_id')
            if ingredient_id is None:
                raise InvalidRecordError('ingredient_id is required for a new ingredient line')
            draft.add_ingredient(ingredient_id, item.get('quantity', ''))


@bp.route('/recipes')
def recipes_list():
    store = get_store()
    return jsonify([recipe_summary(store, recipe) for recipe in store.list_all(Recipe)])


@bp.route('/recipe/<int:id>')
def recipe_view(id):
    store = get_store()
    return jsonify(recipe_detail(store, store.require(Recipe, id)))


@bp.route('/recipe/<int:id>/image')
def recipe_image(id):
    recipe = get_store().require(Recipe, id)
    if recipe.image_data is None:
        return jsonify({'error': 'Recipe has no image'}), 404
    return Response(recipe.image_data, mimetype='application/octet-stream')


@bp.route('/recipe/add', methods=['POST'])
def recipe_add():
    store = get_store()
    draft = RecipeDraft.new(store)
    apply_recipe_form(draft, request_data())
    recipe = draft.save()
    return jsonify(recipe_detail(store, recipe)), 201


@bp.route('/recipe/<int:id>/edit', methods=['POST'])
def recipe_edit(id):
    store = get_store()
    draft = RecipeDraft.for_recipe(store, id)
    apply_recipe_form(draft, request_data())
    recipe = draft.save()
    return jsonify(recipe_detail(store, recipe))


@bp.route('/recipe/<int:id>/delete', methods=['POST'])
def recipe_delete(id):
    get_store().delete(Recipe, id)
    return jsonify({'deleted': True})


# ============================================
# ROUTES - SHOPPING LIST
# ============================================

@bp.route('/shopping')
def shopping_view():
    items = shopping_list(get_store())
    return jsonify({'items': [ingredient.to_dict() for ingredient in items]})


@bp.route('/shopping/<int:id>/available', methods=['POST'])
def shopping_mark_available(id):
    ingredient = mark_available(get_store(), id)
    return jsonify(ingredient.to_dict())


@bp.route('/shopping/available-all', methods=['POST'])
def shopping_mark_all_available():
    updated = mark_all_available(get_store())
    return jsonify({'updated': updated, 'items': []})


# ============================================
# INITIALIZE DATABASE
# ============================================

def init_db(app):
    """Create any missing tables. Failure here is fatal at startup."""
    with app.app_context():
        db.create_all()


if __name__ == '__main__':
    app = create_app()
    logging.basicConfig(level=app.config['LOG_LEVEL'])
    init_db(app)
    # host='0.0.0.0' allows access from other devices on the network
    app.run(debug=app.config.get('DEBUG', False), host='0.0.0.0', port=5000, use_reloader=False)
