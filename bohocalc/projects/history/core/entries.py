"""
Validation and persistence helpers for calculation history entries.
Shared by the history API, the basic calculator and the marketplace runner.
"""

from datetime import datetime

from bohocalc import db
from bohocalc.projects.history.core.constants import (
    CONTEXT_SEPARATOR,
    MAX_EXPRESSION_LENGTH,
    MAX_NOTES_LENGTH,
    MAX_RESULT_LENGTH,
    MAX_TAG_LENGTH,
    MAX_TAGS,
)
from bohocalc.projects.history.models import CalculationHistory


class HistoryValidationError(ValueError):
    """Raised when a history entry payload is invalid."""


def parse_tags(raw):
    """
    Normalise tags from a list or a comma-separated string.
    Tags are trimmed, empties dropped, duplicates removed (first wins).
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        candidates = raw.split(',')
    elif isinstance(raw, (list, tuple)):
        candidates = raw
    else:
        raise HistoryValidationError("Tags must be a list or a comma-separated string")

    tags = []
    for tag in candidates:
        if not isinstance(tag, str):
            raise HistoryValidationError("Each tag must be a string")
        tag = tag.strip()
        if not tag or tag in tags:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise HistoryValidationError(f"Tags must be {MAX_TAG_LENGTH} characters or less")
        tags.append(tag)

    if len(tags) > MAX_TAGS:
        raise HistoryValidationError(f"At most {MAX_TAGS} tags are allowed")
    return tags


def combine_notes(notes, context=None):
    """Join notes and context as 'notes\\n\\nContext: context'; blank parts are skipped. Returns None when empty."""
    parts = [str(part) for part in (notes, context) if part is not None and str(part).strip()]
    if not parts:
        return None
    combined = CONTEXT_SEPARATOR.join(parts).strip()
    if len(combined) > MAX_NOTES_LENGTH:
        raise HistoryValidationError(f"Notes must be {MAX_NOTES_LENGTH} characters or less")
    return combined


def _clean_text(value, field, max_length):
    if value is None:
        raise HistoryValidationError(f"{field} is required")
    value = str(value).strip()
    if not value:
        raise HistoryValidationError(f"{field} is required")
    if len(value) > max_length:
        raise HistoryValidationError(f"{field} must be {max_length} characters or less")
    return value


def create_history_entry(user_id, expression, result, tags=None, notes=None, context=None):
    """Validate and add a history entry to the session. The caller commits."""
    entry = CalculationHistory(
        user_id=user_id,
        expression=_clean_text(expression, 'Expression', MAX_EXPRESSION_LENGTH),
        result=_clean_text(result, 'Result', MAX_RESULT_LENGTH),
        tags=parse_tags(tags),
        notes=combine_notes(notes, context),
    )
    db.session.add(entry)
    return entry


def update_history_entry(entry, data):
    """Apply tag/notes edits from a JSON payload. Returns True when anything changed."""
    changed = False
    if 'tags' in data:
        tags = parse_tags(data.get('tags'))
        if tags != list(entry.tags or []):
            entry.tags = tags
            changed = True
    if 'notes' in data:
        notes = combine_notes(data.get('notes'), data.get('context'))
        if notes != entry.notes:
            entry.notes = notes
            changed = True
    if changed:
        entry.updated_at = datetime.utcnow()
    return changed
