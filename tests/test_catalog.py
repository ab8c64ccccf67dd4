import pytest

from models import Category, Ingredient, Recipe, RecipeIngredient
from services import (
    MISSING, DuplicateNameError, InvalidRecordError, PersistenceError,
    RecordNotFoundError,
)
from utils.sanitizer import normalize_name


def make_recipe(store, name='Pesto', **fields):
    fields.setdefault('instructions', 'Blend everything until smooth.')
    return store.create(Recipe, name=name, **fields)


def test_create_assigns_id_and_round_trips(store):
    ingredient = store.create(Ingredient, name='Basil', is_available=False)
    assert ingredient.id is not None

    found = store.get(Ingredient, ingredient.id)
    assert found.to_dict() == {'id': ingredient.id, 'name': 'Basil', 'is_available': False}


def test_recipe_round_trip_keeps_every_field(store):
    category = store.create(Category, name='Italian')
    recipe = make_recipe(
        store,
        summary='Fresh and green.',
        category_id=category.id,
        servings=4,
        time_minutes=15,
        image_data=b'\x89PNG not really',
    )

    found = store.get(Recipe, recipe.id)
    assert found.name == 'Pesto'
    assert found.summary == 'Fresh and green.'
    assert found.category_id == category.id
    assert (found.servings, found.time_minutes) == (4, 15)
    assert found.instructions == 'Blend everything until smooth.'
    assert found.image_data == b'\x89PNG not really'


def test_defaults(store):
    ingredient = store.create(Ingredient, name='Salt')
    recipe = make_recipe(store)
    assert ingredient.is_available is True
    assert (recipe.servings, recipe.time_minutes, recipe.summary) == (1, 5, '')
    assert recipe.category_id is None
    assert recipe.image_data is None


def test_list_all_is_in_insertion_order(store):
    for name in ('Thyme', 'Basil', 'Oregano'):
        store.create(Ingredient, name=name)
    assert [i.name for i in store.list_all(Ingredient)] == ['Thyme', 'Basil', 'Oregano']


def test_find_filters_with_predicate(store):
    store.create(Ingredient, name='Basil')
    store.create(Ingredient, name='Bay Leaf', is_available=False)
    store.create(Ingredient, name='Thyme')

    found = store.find(Ingredient, lambda i: i.name.startswith('B'))
    assert [i.name for i in found] == ['Basil', 'Bay Leaf']


def test_names_are_trimmed_but_keep_their_casing(store):
    category = store.create(Category, name='   Comfort   Food  ')
    assert category.name == 'Comfort   Food'


def test_inner_spacing_makes_names_distinct(store):
    store.create(Ingredient, name='Red Pepper')
    store.create(Ingredient, name='Red  Pepper')
    assert [i.name for i in store.list_all(Ingredient)] == ['Red Pepper', 'Red  Pepper']


def test_overlong_name_is_rejected_not_truncated(store):
    fits = 'x' * 49 + 'A'
    store.create(Category, name=fits)
    store.create(Category, name='x' * 49 + 'B')
    assert [c.name for c in store.list_all(Category)] == [fits, 'x' * 49 + 'B']

    with pytest.raises(InvalidRecordError):
        store.create(Category, name='x' * 50 + 'A')
    with pytest.raises(InvalidRecordError):
        store.create(Category, name='x' * 50 + 'B')
    assert len(store.list_all(Category)) == 2


@pytest.mark.parametrize('field,limit', [
    ('summary', 2000),
    ('instructions', 50000),
])
def test_overlong_text_is_rejected_not_truncated(store, field, limit):
    with pytest.raises(InvalidRecordError):
        make_recipe(store, **{field: 's' * (limit + 1)})
    assert store.list_all(Recipe) == []

    recipe = make_recipe(store, **{field: 's' * limit})
    assert len(getattr(store.get(Recipe, recipe.id), field)) == limit


def test_overlong_quantity_is_rejected(store):
    basil = store.create(Ingredient, name='Basil')
    with pytest.raises(InvalidRecordError):
        store.create(RecipeIngredient, ingredient_id=basil.id, quantity='q' * 101)
    assert store.list_all(RecipeIngredient) == []


def test_text_fields_round_trip_unchanged(store):
    summary = '  Fresh,   green\n\n  and fast.  '
    instructions = '1. Blend.\n\t2. Serve.\n'
    recipe = make_recipe(store, summary=summary, instructions=instructions)
    line = store.create(RecipeIngredient, recipe_id=recipe.id, quantity=' 2  cups ')

    found = store.get(Recipe, recipe.id)
    assert (found.summary, found.instructions) == (summary, instructions)
    assert store.get(RecipeIngredient, line.id).quantity == ' 2  cups '


@pytest.mark.parametrize('model,extra', [
    (Ingredient, {}),
    (Category, {}),
    (Recipe, {'instructions': 'Simmer.'}),
])
def test_create_rejects_duplicate_name_ignoring_case_and_spaces(store, model, extra):
    store.create(model, name='Tomato Soup', **extra)

    with pytest.raises(DuplicateNameError):
        store.create(model, name='  tomato SOUP ', **extra)

    assert len(store.list_all(model)) == 1


def test_same_name_is_allowed_across_types(store):
    store.create(Ingredient, name='Pesto')
    store.create(Category, name='Pesto')
    make_recipe(store, name='Pesto')


def test_update_excludes_the_record_being_edited(store):
    basil = store.create(Ingredient, name='Basil')
    updated = store.update(Ingredient, basil.id, name='BASIL')
    assert updated.name == 'BASIL'


def test_update_rejects_name_of_another_record(store):
    store.create(Category, name='Italian')
    other = store.create(Category, name='French')

    with pytest.raises(DuplicateNameError):
        store.update(Category, other.id, name='italian')

    assert store.get(Category, other.id).name == 'French'


def test_normalized_names_stay_distinct(store):
    attempts = ['Basil', 'basil', 'Thyme', ' THYME', 'Sage', 'sage ']
    for name in attempts:
        try:
            store.create(Ingredient, name=name)
        except DuplicateNameError:
            pass
    sage = store.find(Ingredient, lambda i: i.name == 'Sage')[0]
    with pytest.raises(DuplicateNameError):
        store.update(Ingredient, sage.id, name='thyme')

    keys = [normalize_name(i.name) for i in store.list_all(Ingredient)]
    assert sorted(keys) == ['basil', 'sage', 'thyme']


@pytest.mark.parametrize('fields', [
    {'name': ''},
    {'name': '   '},
    {'name': None},
])
def test_blank_names_are_rejected(store, fields):
    with pytest.raises(InvalidRecordError):
        store.create(Category, **fields)


@pytest.mark.parametrize('fields', [
    {'instructions': '  '},
    {'servings': 0},
    {'servings': 101},
    {'servings': True},
    {'servings': '4'},
    {'time_minutes': 0},
    {'time_minutes': 305},
    {'time_minutes': 12},
    {'image_data': 'not bytes'},
])
def test_recipe_field_validation(store, fields):
    with pytest.raises(InvalidRecordError):
        make_recipe(store, **fields)
    assert store.list_all(Recipe) == []


def test_recipe_requires_instructions(store):
    with pytest.raises(InvalidRecordError):
        store.create(Recipe, name='Pesto')


def test_unknown_field_is_rejected(store):
    with pytest.raises(InvalidRecordError):
        store.create(Ingredient, name='Basil', colour='green')


def test_references_must_exist(store):
    with pytest.raises(RecordNotFoundError):
        make_recipe(store, category_id=999)
    with pytest.raises(RecordNotFoundError):
        store.create(RecipeIngredient, ingredient_id=999, quantity='1')


def test_update_and_delete_of_missing_record(store):
    with pytest.raises(RecordNotFoundError):
        store.update(Category, 42, name='Nope')
    with pytest.raises(RecordNotFoundError):
        store.delete(Category, 42)


def test_exists_and_resolve(store):
    basil = store.create(Ingredient, name='Basil')
    assert store.exists(Ingredient, basil.id)
    assert not store.exists(Ingredient, basil.id + 1)
    assert not store.exists(Ingredient, None)

    assert store.resolve(Ingredient, basil.id).name == 'Basil'
    assert store.resolve(Ingredient, basil.id + 1) is MISSING
    assert store.resolve(Ingredient, None) is MISSING
    assert MISSING.name == 'unknown'
    assert not MISSING


def test_deleting_recipe_cascades_to_its_line_items(store):
    basil = store.create(Ingredient, name='Basil')
    recipe = make_recipe(store)
    other = make_recipe(store, name='Bruschetta')
    recipe_id, other_id = recipe.id, other.id
    store.create(RecipeIngredient, recipe_id=recipe_id, ingredient_id=basil.id, quantity='2 cups')
    # Same ingredient twice in one recipe is allowed
    store.create(RecipeIngredient, recipe_id=recipe_id, ingredient_id=basil.id, quantity='1 sprig')
    store.create(RecipeIngredient, recipe_id=other_id, ingredient_id=basil.id, quantity='4 leaves')

    store.delete(Recipe, recipe_id)

    assert not store.exists(Recipe, recipe_id)
    assert store.find(RecipeIngredient, lambda ri: ri.recipe_id == recipe_id) == []
    assert len(store.line_items(other_id)) == 1
    assert store.exists(Ingredient, basil.id)


def test_deleting_category_nullifies_recipes(store):
    italian = store.create(Category, name='Italian')
    pesto = make_recipe(store, category_id=italian.id)
    pesto_id, italian_id = pesto.id, italian.id

    store.delete(Category, italian_id)

    assert not store.exists(Category, italian_id)
    pesto = store.get(Recipe, pesto_id)
    assert pesto is not None
    assert pesto.category_id is None


def test_deleting_ingredient_nullifies_line_items(store):
    basil = store.create(Ingredient, name='Basil')
    recipe = make_recipe(store)
    line = store.create(RecipeIngredient, recipe_id=recipe.id, ingredient_id=basil.id, quantity='2 cups')
    line_id, basil_id = line.id, basil.id

    store.delete(Ingredient, basil_id)

    line = store.get(RecipeIngredient, line_id)
    assert line is not None
    assert line.ingredient_id is None
    assert line.quantity == '2 cups'
    assert store.ingredient_name(line) == 'unknown'


def test_failed_commit_leaves_nothing_behind(store, failing_commit):
    with pytest.raises(PersistenceError):
        store.create(Category, name='Italian')

    failing_commit.undo()
    assert store.list_all(Category) == []
    # The name is free again once the failed action is gone
    store.create(Category, name='Italian')


def test_failed_delete_keeps_references(store, monkeypatch):
    italian = store.create(Category, name='Italian')
    pesto = make_recipe(store, category_id=italian.id)
    italian_id, pesto_id = italian.id, pesto.id

    from sqlalchemy.exc import SQLAlchemyError
    from sqlalchemy.orm import Session

    def commit(self):
        raise SQLAlchemyError('database is locked')

    monkeypatch.setattr(Session, 'commit', commit)
    with pytest.raises(PersistenceError):
        store.delete(Category, italian_id)
    monkeypatch.undo()

    assert store.exists(Category, italian_id)
    assert store.get(Recipe, pesto_id).category_id == italian_id


def test_subscribers_hear_about_each_commit(store):
    changes = []
    unsubscribe = store.subscribe(changes.append)

    category = store.create(Category, name='Italian')
    category_id = category.id
    store.update(Category, category_id, name='Italiano')
    store.delete(Category, category_id)

    assert [(c.action, c.model) for c in changes] == [
        ('create', Category), ('update', Category), ('delete', Category),
    ]
    assert all(c.ids == (category_id,) for c in changes)

    unsubscribe()
    store.create(Category, name='French')
    assert len(changes) == 3


def test_rejected_and_failed_actions_are_not_announced(store, failing_commit):
    changes = []
    store.subscribe(changes.append)

    with pytest.raises(InvalidRecordError):
        store.create(Category, name='')
    with pytest.raises(PersistenceError):
        store.create(Category, name='Italian')

    assert changes == []


def test_broken_subscriber_does_not_undo_commit(store):
    def explode(change):
        raise RuntimeError('listener bug')

    store.subscribe(explode)
    category = store.create(Category, name='Italian')
    assert store.exists(Category, category.id)
