"""
Unit tests for the basic calculator accumulator.

Run (with venv activated):
  python -m unittest tests.calculator.test_accumulator -v
  pytest tests/calculator/ -v
"""
import unittest

from bohocalc.projects.calculator.core.accumulator import (
    Accumulator,
    InvalidKeyError,
    MAX_DISPLAY_LENGTH,
    perform_calculation,
)


def _run(keys, accumulator=None):
    return (accumulator or Accumulator()).press_all(keys)


class TestChainedOperations(unittest.TestCase):
    """Operations apply left to right with no precedence."""

    def test_add_then_multiply_is_left_to_right(self):
        acc = _run(["2", "+", "3", "×", "4", "="])
        self.assertEqual(acc.display, "20")
        self.assertEqual(acc.last_expression, "5 × 4")

    def test_intermediate_result_shown_on_next_operator(self):
        acc = _run(["2", "+", "3", "×"])
        self.assertEqual(acc.display, "5")
        self.assertEqual(acc.previous_value, 5)
        self.assertEqual(acc.operation, "×")
        self.assertTrue(acc.waiting_for_operand)

    def test_ascii_aliases(self):
        acc = _run(["8", "/", "2", "*", "3", "Enter"])
        self.assertEqual(acc.display, "12")

    def test_multi_digit_and_subtraction(self):
        acc = _run(["1", "2", "-", "2", "0", "="])
        self.assertEqual(acc.display, "-8")
        self.assertEqual(acc.last_expression, "12 - 20")

    def test_fractional_result(self):
        acc = _run(["7", "÷", "2", "="])
        self.assertEqual(acc.display, "3.5")

    def test_small_result_in_fixed_notation(self):
        acc = _run(["1", "÷", "1", "0", "0", "0", "0", "0", "="])
        self.assertEqual(acc.display, "0.00001")
        acc.press("5")
        self.assertEqual(acc.display, "5")

    def test_equals_without_operation_is_noop(self):
        acc = _run(["4", "2", "="])
        self.assertEqual(acc.display, "42")
        self.assertEqual(acc.last_expression, "")

    def test_digit_after_equals_starts_new_number(self):
        acc = _run(["2", "+", "2", "=", "7"])
        self.assertEqual(acc.display, "7")


class TestDecimalInput(unittest.TestCase):

    def test_double_decimal_is_idempotent(self):
        acc = _run(["1", ".", ".", "5"])
        self.assertEqual(acc.display, "1.5")

    def test_decimal_while_waiting_starts_zero_point(self):
        acc = _run(["3", "+", "."])
        self.assertEqual(acc.display, "0.")
        self.assertFalse(acc.waiting_for_operand)

    def test_decimal_on_fresh_display(self):
        acc = _run([".", "2", "5"])
        self.assertEqual(acc.display, "0.25")

    def test_digits_ignored_once_display_is_full(self):
        acc = _run(["7"] * 70)
        self.assertEqual(acc.display, "7" * MAX_DISPLAY_LENGTH)
        acc.press(".")
        self.assertEqual(len(acc.display), MAX_DISPLAY_LENGTH)
        self.assertEqual(Accumulator.from_dict(acc.to_dict()).display, acc.display)

    def test_backspace_frees_room_for_a_digit(self):
        acc = _run(["1"] * MAX_DISPLAY_LENGTH + ["⌫", "2"])
        self.assertEqual(acc.display, "1" * (MAX_DISPLAY_LENGTH - 1) + "2")


class TestClearAndBackspace(unittest.TestCase):

    def test_clear_resets_all_state(self):
        acc = _run(["9", "×", "9", "=", "+", "1", "C"])
        self.assertEqual(acc.display, "0")
        self.assertIsNone(acc.previous_value)
        self.assertIsNone(acc.operation)
        self.assertFalse(acc.waiting_for_operand)
        self.assertEqual(acc.last_expression, "")
        self.assertFalse(acc.can_save)

    def test_backspace_drops_last_character(self):
        acc = _run(["1", "2", "3", "⌫"])
        self.assertEqual(acc.display, "12")

    def test_backspace_on_single_digit_shows_zero(self):
        acc = _run(["5", "Backspace"])
        self.assertEqual(acc.display, "0")


class TestDivisionByZero(unittest.TestCase):

    def test_positive_over_zero_is_infinity(self):
        acc = _run(["5", "÷", "0", "="])
        self.assertEqual(acc.display, "Infinity")
        self.assertEqual(acc.last_expression, "5 ÷ 0")

    def test_zero_over_zero_is_nan(self):
        self.assertEqual(_run(["0", "÷", "0", "="]).display, "NaN")

    def test_negative_over_zero(self):
        self.assertEqual(perform_calculation(-3.0, 0.0, "÷"), float("-inf"))


class TestCanSave(unittest.TestCase):

    def test_can_save_after_calculation(self):
        self.assertTrue(_run(["2", "+", "2", "="]).can_save)

    def test_cannot_save_zero_result(self):
        self.assertFalse(_run(["2", "-", "2", "="]).can_save)

    def test_cannot_save_before_equals(self):
        self.assertFalse(_run(["2", "+", "2"]).can_save)


class TestStateSerialisation(unittest.TestCase):

    def test_round_trip_through_dict(self):
        acc = _run(["2", "+", "3"])
        restored = Accumulator.from_dict(acc.to_dict())
        restored.press_all(["×", "4", "="])
        self.assertEqual(restored.display, "20")

    def test_previous_value_serialised_as_text(self):
        data = _run(["2", ".", "5", "+"]).to_dict()
        self.assertEqual(data["previous_value"], "2.5")
        self.assertEqual(data["operation"], "+")

    def test_empty_state_is_fresh(self):
        self.assertEqual(Accumulator.from_dict(None).display, "0")
        self.assertEqual(Accumulator.from_dict({}).display, "0")

    def test_invalid_display_rejected(self):
        with self.assertRaises(ValueError):
            Accumulator.from_dict({"display": "__import__"})

    def test_waiting_flag_must_be_boolean(self):
        with self.assertRaises(ValueError):
            Accumulator.from_dict({"display": "1", "waiting_for_operand": "false"})
        with self.assertRaises(ValueError):
            Accumulator.from_dict({"display": "1", "waiting_for_operand": 1})
        self.assertFalse(Accumulator.from_dict({"display": "1", "waiting_for_operand": None}).waiting_for_operand)
        self.assertTrue(Accumulator.from_dict({"display": "1", "waiting_for_operand": True}).waiting_for_operand)

    def test_invalid_operation_rejected(self):
        with self.assertRaises(ValueError):
            Accumulator.from_dict({"display": "1", "previous_value": "1", "operation": "^"})

    def test_unknown_key_rejected(self):
        with self.assertRaises(InvalidKeyError):
            Accumulator().press("sqrt")


if __name__ == "__main__":
    unittest.main()
