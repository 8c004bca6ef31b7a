"""
Arithmetic accumulator behind the basic calculator.

Operations are applied strictly left to right with no precedence:
2 + 3 × 4 = evaluates as (2 + 3) × 4 = 20.

The state is a plain dict-serialisable object so that the HTTP layer can stay
stateless: the client sends the current state with each key press and gets
the next state back.
"""

from bohocalc.utils.formatting import format_number, parse_number

ADD = '+'
SUBTRACT = '-'
MULTIPLY = '×'
DIVIDE = '÷'

OPERATIONS = (ADD, SUBTRACT, MULTIPLY, DIVIDE)

# ASCII spellings accepted from API clients
OPERATION_ALIASES = {
    '*': MULTIPLY,
    'x': MULTIPLY,
    '/': DIVIDE,
}

DIGITS = '0123456789'
DECIMAL_KEY = '.'
EQUALS_KEYS = ('=', 'Enter')
CLEAR_KEYS = ('C', 'c', 'Escape')
BACKSPACE_KEYS = ('⌫', 'Backspace')

# Digits, sign, exponent and the letters of Infinity / NaN
DISPLAY_CHARS = set(DIGITS + '.-+eInfityNa')
MAX_DISPLAY_LENGTH = 64


class InvalidKeyError(ValueError):
    """Raised when a key press does not map to a calculator action."""


def perform_calculation(first_value, second_value, operation):
    if operation == ADD:
        return first_value + second_value
    if operation == SUBTRACT:
        return first_value - second_value
    if operation == MULTIPLY:
        return first_value * second_value
    if operation == DIVIDE:
        if second_value == 0:
            if first_value == 0 or first_value != first_value:
                return float('nan')
            return float('inf') if first_value > 0 else float('-inf')
        return first_value / second_value
    return second_value


class Accumulator:
    def __init__(self, display='0', previous_value=None, operation=None,
                 waiting_for_operand=False, last_expression=''):
        self.display = display
        self.previous_value = previous_value
        self.operation = operation
        self.waiting_for_operand = waiting_for_operand
        self.last_expression = last_expression

    # --- Serialisation ---

    @classmethod
    def from_dict(cls, data):
        """Rebuild an accumulator from client-supplied state, validating each field."""
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("State must be an object")

        display = str(data.get('display') or '0')
        if len(display) > MAX_DISPLAY_LENGTH or not set(display) <= DISPLAY_CHARS:
            raise ValueError("Invalid display value")

        previous_value = data.get('previous_value')
        if previous_value is not None:
            if isinstance(previous_value, bool):
                raise ValueError("Invalid previous value")
            previous_value = parse_number(previous_value)

        operation = data.get('operation')
        if operation is not None:
            operation = OPERATION_ALIASES.get(operation, operation)
            if operation not in OPERATIONS:
                raise ValueError("Invalid operation")

        waiting_for_operand = data.get('waiting_for_operand')
        if waiting_for_operand is None:
            waiting_for_operand = False
        elif not isinstance(waiting_for_operand, bool):
            raise ValueError("Invalid waiting_for_operand flag")

        return cls(
            display=display,
            previous_value=previous_value,
            operation=operation,
            waiting_for_operand=waiting_for_operand,
            last_expression=str(data.get('last_expression') or ''),
        )

    def to_dict(self):
        return {
            'display': self.display,
            'previous_value': (
                format_number(self.previous_value) if self.previous_value is not None else None
            ),
            'operation': self.operation,
            'waiting_for_operand': self.waiting_for_operand,
            'last_expression': self.last_expression,
            'can_save': self.can_save,
        }

    @property
    def can_save(self):
        return bool(self.last_expression) and self.display != '0'

    # --- Key handlers ---

    def input_digit(self, digit):
        if self.waiting_for_operand:
            self.display = digit
            self.waiting_for_operand = False
        elif self.display == '0':
            self.display = digit
        elif len(self.display) < MAX_DISPLAY_LENGTH:
            self.display = self.display + digit

    def input_decimal(self):
        if self.waiting_for_operand:
            self.display = '0.'
            self.waiting_for_operand = False
        elif '.' not in self.display and len(self.display) < MAX_DISPLAY_LENGTH:
            self.display = self.display + '.'

    def input_operation(self, next_operation):
        input_value = parse_number(self.display)

        if self.previous_value is None:
            self.previous_value = input_value
        elif self.operation:
            current_value = self.previous_value or 0
            new_value = perform_calculation(current_value, input_value, self.operation)
            self.display = format_number(new_value)
            self.previous_value = new_value

        self.waiting_for_operand = True
        self.operation = next_operation

    def calculate(self):
        if self.previous_value is None or not self.operation:
            return

        input_value = parse_number(self.display)
        new_value = perform_calculation(self.previous_value, input_value, self.operation)

        self.last_expression = (
            f"{format_number(self.previous_value)} {self.operation} {format_number(input_value)}"
        )
        self.display = format_number(new_value)
        self.previous_value = None
        self.operation = None
        self.waiting_for_operand = True

    def clear(self):
        self.display = '0'
        self.previous_value = None
        self.operation = None
        self.waiting_for_operand = False
        self.last_expression = ''

    def backspace(self):
        self.display = self.display[:-1] or '0'

    def press(self, key):
        """Dispatch a single key label to the matching handler."""
        if not isinstance(key, str) or not key:
            raise InvalidKeyError(f"Invalid key: {key!r}")

        key = OPERATION_ALIASES.get(key, key)
        if key in DIGITS and len(key) == 1:
            self.input_digit(key)
        elif key == DECIMAL_KEY:
            self.input_decimal()
        elif key in OPERATIONS:
            self.input_operation(key)
        elif key in EQUALS_KEYS:
            self.calculate()
        elif key in CLEAR_KEYS:
            self.clear()
        elif key in BACKSPACE_KEYS:
            self.backspace()
        else:
            raise InvalidKeyError(f"Invalid key: {key!r}")
        return self

    def press_all(self, keys):
        for key in keys:
            self.press(key)
        return self
