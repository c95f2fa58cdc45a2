"""Rule text -> canonical expressions.

A rule is one or more `;`-separated statements. Splitting and assignment
detection are two separate passes:

1. `split_statements` walks the text with two states (code / inside a string
   literal) so a `;` inside quotes never ends a statement.
2. `match_assignment` only looks at the start of a single statement, so a `=`
   buried in a comparison or a conditional expression is never taken for an
   assignment.

`amount = amount * 2; emit(amount * rate, "USD")` becomes
`['assign("amount", amount * 2)', 'emit(amount * rate, "USD")']`.
"""

from __future__ import annotations

import keyword
import re
from typing import List, Optional, Tuple

STATEMENT_SEPARATOR = ";"
ASSIGN_FUNCTION = "assign"

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_QUOTES = ("'", '"')


def split_statements(text: str) -> List[str]:
    statements: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None
    i = 0
    while i < len(text):
        ch = text[i]
        if quote is not None:
            current.append(ch)
            if ch == "\\" and i + 1 < len(text):
                current.append(text[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
            current.append(ch)
        elif ch == STATEMENT_SEPARATOR:
            _flush(current, statements)
            current = []
        else:
            current.append(ch)
        i += 1
    _flush(current, statements)
    return statements


def _flush(chars: List[str], statements: List[str]) -> None:
    statement = "".join(chars).strip()
    if statement:
        statements.append(statement)


def match_assignment(statement: str) -> Optional[Tuple[str, str]]:
    """Return `(name, value_expression)` when the statement is `name = expr`."""
    m = _IDENTIFIER.match(statement)
    if m is None:
        return None
    name = m.group(0)
    if keyword.iskeyword(name):
        return None
    rest = statement[m.end():].lstrip()
    # `==` is equality; `<=`, `>=`, `!=` never start with `=` after an identifier.
    if not rest.startswith("=") or rest.startswith("=="):
        return None
    value = rest[1:].strip()
    if not value:
        return None
    return name, value


def rewrite_assignment(name: str, value: str) -> str:
    return f'{ASSIGN_FUNCTION}("{name}", {value})'


def preprocess(rule: str) -> List[str]:
    """Canonical expressions for a rule; the last one is the result expression."""
    expressions: List[str] = []
    for statement in split_statements(rule):
        assignment = match_assignment(statement)
        if assignment is not None:
            expressions.append(rewrite_assignment(*assignment))
        else:
            expressions.append(statement)
    return expressions
