"""
Constants for the calculator marketplace: categories, sort orders, field limits.
Single source of truth for validation and the categories endpoint.
"""

CATEGORIES = [
    "Finance",
    "Physics",
    "Math",
    "Health",
    "Engineering",
    "Science",
    "Business",
    "Other",
]
DEFAULT_CATEGORY = "Other"

# sort key -> (column attribute name, descending)
SORT_OPTIONS = {
    "recent": ("created_at", True),
    "popular": ("usage_count", True),
    "rating": ("rating_avg", True),
}
DEFAULT_SORT = "recent"

MAX_NAME_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000
MAX_FORMULA_LENGTH = 1000
MAX_VARIABLES = 30
MAX_LABEL_LENGTH = 100
MAX_UNIT_LENGTH = 30
MAX_SEARCH_LENGTH = 100

MIN_RATING = 1
MAX_RATING = 5

RUN_ERROR_MESSAGE = "Error in calculation. Please check your inputs."
