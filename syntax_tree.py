"""Binary syntax trees for infix expressions, folded from RPN.

A tree is a number (a leaf), a `Node(op, left, right)`, or `EMPTY` for the
empty expression. Nodes are plain tuples, so `Node("+", 1, 2) == ("+", 1, 2)`.
"""
import logging
from decimal import Decimal
from math import isfinite
from typing import NamedTuple, Tuple, Union

from shunting_yard import OPS, MalformedRPN, Number, to_rpn

logger = logging.getLogger(__name__)

EMPTY = ()


class Node(NamedTuple):
    op: str
    left: "Tree"
    right: "Tree"


Tree = Union[Number, Node, Tuple[()]]


def is_number(token):
    return isinstance(token, (int, float)) and not isinstance(token, bool)


def build(rpn):
    """Fold the RPN token list `rpn` into a syntax tree.

    >>> build([1, 2, "+", 3, "*"])
    Node(op='*', left=Node(op='+', left=1, right=2), right=3)
    >>> build([]) == EMPTY
    True
    """
    stack = []
    for position, token in enumerate(rpn):
        if is_number(token):
            stack.append(token)
            continue
        if not (isinstance(token, str) and token in OPS):
            raise MalformedRPN(f"unknown token {token!r} at {position}", token, position)
        if len(stack) < 2:
            raise MalformedRPN(
                f"{token!r} at {position} needs 2 operands, found {len(stack)}",
                token,
                position,
            )
        right = stack.pop()
        left = stack.pop()
        stack.append(Node(token, left, right))

    if len(stack) > 1:
        raise MalformedRPN(f"{len(stack)} operands left without an operator")
    tree = stack[0] if stack else EMPTY
    logger.debug(f"build({rpn}) -> {tree}")
    return tree


def to_ast(expression):
    """Convert the infix `expression` string to a syntax tree.

    >>> to_ast("(1+2)*(3+4)")
    Node(op='*', left=Node(op='+', left=1, right=2), right=Node(op='+', left=3, right=4))
    >>> to_ast("1")
    1
    """
    return build(to_rpn(expression))


def format_number(n):
    "Write `n` so that it reads back as the same number of the same type."
    if isinstance(n, int):
        return str(n)
    if not isfinite(n):
        raise ValueError(f"{n!r} has no literal form")
    # Positional notation; the parser has no exponents.
    literal = format(Decimal(repr(n)), "f")
    return literal if "." in literal else literal + ".0"


def unparse(tree):
    """Render `tree` as an infix string with just the parentheses it needs.

    >>> unparse(to_ast("(1+2)*(3+4)"))
    '(1 + 2) * (3 + 4)'
    >>> unparse(to_ast("1^(2^3)")), unparse(to_ast("(1^2)^3"))
    ('1^2^3', '(1^2)^3')
    >>> unparse(to_ast("2d6, 0.00001"))
    '2d6, 0.00001'
    """
    if not isinstance(tree, tuple):
        return format_number(tree)
    if tree == EMPTY:
        return ""
    op, left, right = tree
    x = unparse(left)
    y = unparse(right)
    if isinstance(left, tuple) and not OPS[left[0]].left_first(OPS[op]):
        x = f"({x})"
    if isinstance(right, tuple) and OPS[op].left_first(OPS[right[0]]):
        y = f"({y})"
    if op == ",":
        return f"{x}, {y}"
    return f"{x} {op} {y}" if op in "+-*/%" else f"{x}{op}{y}"
