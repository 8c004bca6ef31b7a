"""
CSV export of a user's calculation history.
"""

import csv
import io
from zoneinfo import ZoneInfo

from bohocalc.projects.history.core.constants import (
    EXPORT_DATETIME_FORMAT,
    EXPORT_FILENAME_TEMPLATE,
    EXPORT_HEADER,
)


def format_datetime_for_zone(dt, time_zone):
    """
    Convert a naive UTC datetime to the given time zone and format as 'Jan 23, 2026 3:45 PM'.
    """
    if dt is None:
        return ''
    local_dt = dt.replace(tzinfo=ZoneInfo('UTC')).astimezone(ZoneInfo(time_zone or 'UTC'))
    return local_dt.strftime(EXPORT_DATETIME_FORMAT)


def history_to_rows(entries, time_zone='UTC'):
    """Yield the header followed by one row per entry."""
    yield EXPORT_HEADER
    for entry in entries:
        yield [
            entry.expression,
            entry.result,
            ', '.join(entry.tags or []),
            entry.notes or '',
            format_datetime_for_zone(entry.created_at, time_zone),
        ]


def build_history_csv(entries, time_zone='UTC'):
    """Serialise entries to CSV text with every field double-quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerows(history_to_rows(entries, time_zone))
    return buffer.getvalue()


def export_filename(day):
    """Download name for an export made on the given date."""
    return EXPORT_FILENAME_TEMPLATE.format(date=day.strftime('%Y-%m-%d'))
