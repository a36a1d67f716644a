"""Infix to reverse-polish notation, via the shunting-yard algorithm.

>>> to_rpn("(1+2)*(3+4)")
[1, 2, '+', 3, 4, '+', '*']
>>> to_rpn("1^2^3")
[1, 2, 3, '^', '^']
>>> to_rpn("-1.4 * -2.5")
[-1.4, -2.5, '*']
"""
import logging
import os
import re
from typing import List, Literal, NamedTuple, Tuple, Union

logger = logging.getLogger(__name__)

def env_flag(name):
    """Is the environment variable `name` set to something other than off?

    Unset, empty, "0", "false" and "no" (any case) all mean off.
    """
    return os.getenv(name, "").strip().lower() not in ("", "0", "false", "no")


# Log every reducer state transition, not just results.
DEBUG = env_flag("DEBUG")

Number = Union[int, float]
Token = Union[Number, str]


class ParseError(ValueError):
    pass


class InvalidCharacter(ParseError):
    def __init__(self, char, position, rest):
        super().__init__(f"failed to parse expression starting at {rest!r} (position {position})")
        self.char = char
        self.position = position
        self.rest = rest


class UnbalancedParenthesis(InvalidCharacter):
    pass


class InvalidNumber(ParseError):
    def __init__(self, literal):
        super().__init__(f"invalid number literal {literal!r}")
        self.literal = literal


class MalformedRPN(ParseError):
    def __init__(self, msg, token=None, position=None):
        super().__init__(msg)
        self.token = token
        self.position = position


class Op(NamedTuple):
    op: str
    prec: int
    assoc: Literal["l", "r"]  # left-associative, right-associative

    def left_first(self, other):
        return self.prec > other.prec or self.prec == other.prec and other.assoc == "l"


# One precedence level per line, lowest first; each word is <symbol><assoc>.
OP_GROUPS = """
,l
+l -l
*l /l ^r
dl %l
""".strip()
OPS = {
    sym_assoc[:-1]: Op(sym_assoc[:-1], prec, sym_assoc[-1])
    for prec, op_group in enumerate(OP_GROUPS.split("\n"))
    for sym_assoc in op_group.split()
}

DIGITS = frozenset("0123456789.")
SIGNS = frozenset("+-")


def compare(incoming, top) -> Tuple[Literal["higher", "equal", "lower"], str]:
    """Rank operator `incoming` against the operator stack's `top`.

    Returns the precedence relation and `incoming`'s associativity. An open
    parenthesis on top always ranks lower than anything arriving.

    >>> compare("*", "+")
    ('higher', 'l')
    >>> compare("^", "*")
    ('equal', 'r')
    >>> compare(",", "(")
    ('higher', 'l')
    """
    op = OPS[incoming]
    if top == "(":
        return "higher", op.assoc
    other = OPS[top]
    if op.prec > other.prec:
        return "higher", op.assoc
    if op.prec == other.prec:
        return "equal", op.assoc
    return "lower", op.assoc


def binds_first(top, incoming):
    """Must the stacked operator `top` be emitted before `incoming` is pushed?"""
    relation, assoc = compare(incoming, top)
    return relation == "lower" or relation == "equal" and assoc == "l"


def normalize(expression):
    return re.sub(r"\s+", "", expression)


def push_literal(digits, output):
    """Move the literal collected in `digits` (if any) onto `output`.

    A literal containing a `.` becomes a float, anything else an int.

    >>> out = []
    >>> push_literal(list("-3.5"), out)
    >>> push_literal(list("+12"), out)
    >>> out
    [-3.5, 12]
    """
    if not digits:
        return
    literal = "".join(digits)
    digits.clear()
    output.append(to_number(literal))


INT_LITERAL = re.compile(r"[+-]?[0-9]+")
FLOAT_LITERAL = re.compile(r"[+-]?(?:[0-9]+\.[0-9]*|\.[0-9]+)")


def to_number(literal):
    """Parse a signed decimal literal; with a `.` it is a float, else an int.

    >>> to_number("-12"), to_number("+.5"), to_number("3.")
    (-12, 0.5, 3.0)
    >>> to_number("9" * 5000) == 10**5000 - 1
    True
    """
    if FLOAT_LITERAL.fullmatch(literal):
        return float(literal)
    if not INT_LITERAL.fullmatch(literal):
        raise InvalidNumber(literal)
    sign = -1 if literal[0] == "-" else 1
    digits = literal.lstrip("+-")
    # int() refuses strings longer than sys.get_int_max_str_digits().
    n = 0
    for i in range(0, len(digits), 1000):
        chunk = digits[i : i + 1000]
        n = n * 10 ** len(chunk) + int(chunk)
    return sign * n


class State(NamedTuple):
    digits: List[str]
    operators: List[str]
    output: List[Token]
    expects_operand: bool


def classify(char):
    if char in DIGITS:
        return "digit"
    if char == "(":
        return "open"
    if char == ")":
        return "close"
    if char in SIGNS:
        return "sign"
    if char in OPS:
        return "operator"
    return "other"


def step(state, position, char, expression):
    """Feed one character of the normalized `expression` to the reducer."""
    digits, operators, output, expects_operand = state
    kind = classify(char)

    if kind == "digit":
        digits.append(char)
        return state._replace(expects_operand=False)

    if kind == "open" and not digits:
        operators.append("(")
        return state._replace(expects_operand=True)

    if kind == "close":
        push_literal(digits, output)
        while operators:
            if (op := operators.pop()) == "(":
                break
            output.append(op)
        return state

    if kind == "sign" and not digits and expects_operand:
        digits.append(char)
        return state._replace(expects_operand=False)

    if kind in ("sign", "operator"):
        push_literal(digits, output)
        while operators and binds_first(operators[-1], char):
            output.append(operators.pop())
        operators.append(char)
        return state._replace(expects_operand=True)

    raise InvalidCharacter(char, position, expression[position:])


def reduce_infix(expression):
    """Convert a whitespace-free infix `expression` to a list of RPN tokens.

    Numbers come out as ints or floats, operators as one-character strings.
    """
    state = State([], [], [], True)
    for position, char in enumerate(expression):
        if DEBUG:
            logger.debug(f"{position:>4} {char!r} {classify(char):<8} {state}")
        state = step(state, position, char, expression)

    digits, operators, output, _ = state
    push_literal(digits, output)
    if "(" in operators:
        position = unmatched_paren(expression)
        raise UnbalancedParenthesis("(", position, expression[position:])
    output.extend(reversed(operators))
    return output


def unmatched_paren(expression):
    """Position of the innermost `(` in `expression` that is never closed."""
    opened = []
    for position, char in enumerate(expression):
        if char == "(":
            opened.append(position)
        elif char == ")" and opened:
            opened.pop()
    return opened[-1]


def to_rpn(expression):
    """Convert the infix `expression` string to reverse-polish notation.

    Operand counts are not checked: `to_rpn("1,")` gives `[1, ',']`, and it
    is `syntax_tree.build` that rejects such a list.
    """
    try:
        rpn = reduce_infix(normalize(expression))
    except ParseError as err:
        logger.debug(f"to_rpn({expression!r}) failed: {err}")
        raise
    logger.debug(f"to_rpn({expression!r}) -> {rpn}")
    return rpn
