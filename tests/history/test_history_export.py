"""
Unit tests for history CSV export and entry validation helpers.
"""
import csv
import io
import unittest
from datetime import date, datetime
from types import SimpleNamespace

from bohocalc.projects.history.core.entries import (
    HistoryValidationError,
    combine_notes,
    parse_tags,
)
from bohocalc.projects.history.core.export import (
    build_history_csv,
    export_filename,
    format_datetime_for_zone,
)


def _entry(expression="2 + 2", result="4", tags=None, notes=None, created_at=None):
    return SimpleNamespace(
        expression=expression,
        result=result,
        tags=tags or [],
        notes=notes,
        created_at=created_at or datetime(2026, 1, 23, 20, 45),
    )


class TestBuildHistoryCsv(unittest.TestCase):

    def test_header_and_all_fields_quoted(self):
        content = build_history_csv([_entry(tags=["math", "quick"], notes="hi")])
        lines = content.splitlines()
        self.assertEqual(lines[0], '"Expression","Result","Tags","Notes","Date"')
        self.assertEqual(lines[1], '"2 + 2","4","math, quick","hi","Jan 23, 2026 8:45 PM"')

    def test_quotes_and_newlines_escaped(self):
        content = build_history_csv([_entry(expression='say "hi"', notes="line1\nline2")])
        rows = list(csv.reader(io.StringIO(content)))
        self.assertEqual(rows[1][0], 'say "hi"')
        self.assertEqual(rows[1][3], "line1\nline2")
        self.assertIn('"say ""hi"""', content)

    def test_date_in_user_time_zone(self):
        content = build_history_csv([_entry()], "America/New_York")
        rows = list(csv.reader(io.StringIO(content)))
        self.assertEqual(rows[1][4], "Jan 23, 2026 3:45 PM")

    def test_empty_history_has_only_header(self):
        self.assertEqual(build_history_csv([]).splitlines(), ['"Expression","Result","Tags","Notes","Date"'])

    def test_missing_notes_exported_blank(self):
        rows = list(csv.reader(io.StringIO(build_history_csv([_entry(notes=None)]))))
        self.assertEqual(rows[1][3], "")


class TestExportHelpers(unittest.TestCase):

    def test_filename(self):
        self.assertEqual(export_filename(date(2026, 3, 7)), "bohocalc-history-2026-03-07.csv")

    def test_format_none_is_blank(self):
        self.assertEqual(format_datetime_for_zone(None, "UTC"), "")


class TestEntryHelpers(unittest.TestCase):

    def test_parse_tags_from_string(self):
        self.assertEqual(parse_tags(" a, b ,, a ,c "), ["a", "b", "c"])

    def test_parse_tags_from_list(self):
        self.assertEqual(parse_tags(["x", " y ", ""]), ["x", "y"])

    def test_parse_tags_rejects_non_strings(self):
        with self.assertRaises(HistoryValidationError):
            parse_tags([1, 2])

    def test_combine_notes_with_context(self):
        self.assertEqual(combine_notes("n", "c"), "n\n\nContext: c")

    def test_combine_notes_context_only(self):
        self.assertEqual(combine_notes("  ", "c"), "c")

    def test_blank_notes_are_none(self):
        self.assertIsNone(combine_notes("   ", None))
        self.assertIsNone(combine_notes(None, ""))


if __name__ == "__main__":
    unittest.main()
