"""
Constants for the calculation history: field limits and export layout.
"""

MAX_EXPRESSION_LENGTH = 1000
MAX_RESULT_LENGTH = 255
MAX_NOTES_LENGTH = 5000
MAX_TAGS = 20
MAX_TAG_LENGTH = 50

CONTEXT_SEPARATOR = "\n\nContext: "

EXPORT_HEADER = ["Expression", "Result", "Tags", "Notes", "Date"]
EXPORT_FILENAME_TEMPLATE = "bohocalc-history-{date}.csv"
EXPORT_DATETIME_FORMAT = "%b %-d, %Y %-I:%M %p"
