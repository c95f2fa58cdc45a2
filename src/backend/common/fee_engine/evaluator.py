from __future__ import annotations

import ast
from collections import ChainMap
from decimal import Decimal, localcontext
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from simpleeval import EvalWithCompoundTypes, InvalidExpression

from .coercion import EXACT_CONTEXT, to_decimal
from .config import DEFAULT_DECIMAL_PRECISION
from .errors import RuleCompileError, RuleEvaluationError
from .models import FeeItem, RuleResult
from .preprocess import ASSIGN_FUNCTION

EMIT_FUNCTION = "emit"


@lru_cache(maxsize=512)
def _parse(expression: str) -> ast.AST:
    body = ast.parse(expression.strip()).body
    # One expression per statement; a second line is not silently ignored.
    if len(body) != 1:
        raise InvalidExpression(f"expected exactly one expression, found {len(body)} statements")
    return body[0]


def compile_expression(expression: str, *, rule: str = "") -> ast.AST:
    try:
        return _parse(expression)
    except (SyntaxError, InvalidExpression) as exc:
        raise RuleCompileError(
            f"failed to compile expression {expression!r}: {exc}",
            rule=rule,
            expression=expression,
        ) from exc


def emit(amount: Any, currency: str) -> FeeItem:
    return FeeItem(amount=to_decimal(amount), currency=currency)


class RuleEvaluator:
    """Runs canonical expressions against a copy of the rule variables.

    A rule's expressions share one environment: `assign` records the new
    value as a pending update and makes it visible to the expressions that
    follow. Only the last expression's value is inspected for fee items:

    - a FeeItem is recorded;
    - a list of strings is evaluated item by item, each item's FeeItem(s) recorded;
    - a list holding FeeItems records those FeeItems;
    - anything else (including None) records nothing.
    """

    def __init__(
        self,
        *,
        decimal_precision: int = DEFAULT_DECIMAL_PRECISION,
        null_names: Iterable[str] = ("null", "nil"),
    ):
        self.decimal_precision = decimal_precision
        self._constants: Dict[str, Any] = {name: None for name in null_names}

    def evaluate(
        self,
        statements: Sequence[str],
        variables: Mapping[str, Any],
        *,
        rule: str = "",
    ) -> Optional[RuleResult]:
        """Evaluate a preprocessed rule; None when it neither emits nor assigns."""
        if not statements:
            return None

        env: Dict[str, Any] = dict(variables)
        updates: Dict[str, Any] = {}
        interpreter = EvalWithCompoundTypes(
            functions=self._functions(env, updates),
            names=ChainMap(env, self._constants),
        )

        for statement in statements[:-1]:
            self._run(interpreter, statement, rule)
        output = self._run(interpreter, statements[-1], rule)

        fee_items: List[FeeItem] = []
        expressions = _expression_strings(output)
        if expressions:
            for expression in expressions:
                _collect_fee_items(self._run(interpreter, expression, rule), fee_items)
        else:
            _collect_fee_items(output, fee_items)

        if not fee_items and not updates:
            return None
        return RuleResult(fee_items=fee_items, updates=updates)

    def _run(self, interpreter: EvalWithCompoundTypes, expression: str, rule: str) -> Any:
        node = compile_expression(expression, rule=rule)
        try:
            return interpreter.eval(expression, previously_parsed=node)
        except Exception as exc:
            raise RuleEvaluationError(
                f"failed to execute expression {expression!r}: {type(exc).__name__}: {exc}",
                rule=rule,
                expression=expression,
            ) from exc

    def _functions(self, env: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Callable[..., Any]]:
        def assign(name: str, value: Any) -> None:
            updates[name] = value
            env[name] = value
            return None

        return {
            EMIT_FUNCTION: emit,
            ASSIGN_FUNCTION: assign,
            "add": lambda a, b: _exact(lambda: to_decimal(a) + to_decimal(b)),
            "sub": lambda a, b: _exact(lambda: to_decimal(a) - to_decimal(b)),
            "mul": lambda a, b: _exact(lambda: to_decimal(a) * to_decimal(b)),
            "div": self._divide,
            "neg": lambda a: _exact(lambda: -to_decimal(a)),
        }

    def _divide(self, a: Any, b: Any) -> Decimal:
        # The only helper that can need rounding.
        with localcontext() as dctx:
            dctx.prec = self.decimal_precision
            return to_decimal(a) / to_decimal(b)


def _exact(op: Callable[[], Decimal]) -> Decimal:
    with localcontext(EXACT_CONTEXT):
        return op()


def _expression_strings(output: Any) -> Optional[List[str]]:
    if not isinstance(output, (list, tuple)) or not output:
        return None
    if not all(isinstance(item, str) for item in output):
        return None
    return list(output)


def _collect_fee_items(output: Any, fee_items: List[FeeItem]) -> None:
    if isinstance(output, FeeItem):
        fee_items.append(output)
        return
    if isinstance(output, (list, tuple)):
        fee_items.extend(item for item in output if isinstance(item, FeeItem))
