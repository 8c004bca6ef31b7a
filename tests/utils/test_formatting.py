"""Unit tests for shared number formatting and JSON extraction helpers."""
import unittest

from bohocalc.utils.formatting import format_number, parse_number
from bohocalc.utils.llm_json import extract_json_object, strip_code_fences


class TestFormatNumber(unittest.TestCase):

    def test_integral_values_have_no_fraction(self):
        self.assertEqual(format_number(5.0), "5")
        self.assertEqual(format_number(-12.0), "-12")

    def test_fractional_values(self):
        self.assertEqual(format_number(2.5), "2.5")
        self.assertEqual(format_number(0.1 + 0.2), "0.30000000000000004")

    def test_non_finite_values(self):
        self.assertEqual(format_number(float("inf")), "Infinity")
        self.assertEqual(format_number(float("-inf")), "-Infinity")
        self.assertEqual(format_number(float("nan")), "NaN")

    def test_small_exponent(self):
        self.assertEqual(format_number(1e-7), "1e-7")
        self.assertEqual(format_number(1.5e-7), "1.5e-7")
        self.assertEqual(format_number(-2.5e-8), "-2.5e-8")

    def test_fixed_notation_down_to_one_millionth(self):
        self.assertEqual(format_number(1e-5), "0.00001")
        self.assertEqual(format_number(1e-6), "0.000001")
        self.assertEqual(format_number(-1.25e-5), "-0.0000125")
        self.assertEqual(format_number(0.00012), "0.00012")

    def test_large_integral_values_switch_to_exponent(self):
        self.assertEqual(format_number(1e20), "100000000000000000000")
        self.assertEqual(format_number(1e21), "1e+21")

    def test_parse_number_invalid_is_nan(self):
        self.assertNotEqual(parse_number("abc"), parse_number("abc"))
        self.assertEqual(parse_number("3.5"), 3.5)


class TestExtractJsonObject(unittest.TestCase):

    def test_strips_fences(self):
        self.assertEqual(strip_code_fences('```json\n{"a": 1}\n```'), '{"a": 1}')

    def test_object_with_surrounding_text(self):
        parsed, err = extract_json_object('Here you go: {"a": {"b": "}"}} thanks')
        self.assertIsNone(err)
        self.assertEqual(parsed, {"a": {"b": "}"}})

    def test_no_object(self):
        parsed, err = extract_json_object("no json here")
        self.assertIsNone(parsed)
        self.assertIn("No JSON", err)

    def test_unbalanced(self):
        parsed, err = extract_json_object('{"a": 1')
        self.assertIsNone(parsed)
        self.assertIsNotNone(err)

    def test_empty(self):
        self.assertEqual(extract_json_object("  "), (None, "Empty response"))


if __name__ == "__main__":
    unittest.main()
