"""Place categorization and themed set selection."""

from .categorizer import CATEGORIES, CATEGORY_PRECEDENCE, categorize, category_for
from .selector import (
    FALLBACK_THEME,
    THEME_DEFINITIONS,
    ThemeDefinition,
    select_theme_sets,
    select_weighted_subset,
)

__all__ = [
    "CATEGORIES",
    "CATEGORY_PRECEDENCE",
    "categorize",
    "category_for",
    "FALLBACK_THEME",
    "THEME_DEFINITIONS",
    "ThemeDefinition",
    "select_theme_sets",
    "select_weighted_subset",
]
