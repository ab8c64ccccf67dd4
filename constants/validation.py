"""
Validation Constants

Bounds and limits for catalog fields. The HTTP layer clamps form input to
these ranges; the catalog store rejects anything outside them.
"""

# Recipe servings (people)
MIN_SERVINGS = 1
MAX_SERVINGS = 100
DEFAULT_SERVINGS = 1

# Recipe preparation time (minutes), adjustable in fixed steps
MIN_TIME_MINUTES = 5
MAX_TIME_MINUTES = 300
TIME_STEP_MINUTES = 5
DEFAULT_TIME_MINUTES = 5

# Maximum field lengths
MAX_LENGTHS = {
    'ingredient_name': 200,
    'category_name': 50,
    'recipe_name': 200,
    'summary': 2000,
    'instructions': 50000,
    'quantity': 100,
}

# Maximum stored image blob (10MB)
MAX_IMAGE_BYTES = 10 * 1024 * 1024

# Display name for a line item whose ingredient no longer exists
MISSING_NAME = 'unknown'
