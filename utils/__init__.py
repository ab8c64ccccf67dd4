# Utility modules for the recipe catalog
from .sanitizer import (
    sanitize_name, sanitize_text, sanitize_quantity,
    normalize_name, fold_for_search
)
