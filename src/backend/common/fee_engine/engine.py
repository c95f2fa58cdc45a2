from __future__ import annotations

import copy
import logging
from typing import List, Optional, Tuple

from .coercion import Scalar
from .config import FeeEngineSettings
from .context import ExecutionContext
from .errors import InvalidArgumentError, InvalidStateError, RuleExecutionError
from .evaluator import RuleEvaluator
from .models import ExecuteResult
from .preprocess import preprocess
from .summary import summarize_fee_items

logger = logging.getLogger(__name__)


class FeeEngine:
    """Executes queued fee rules against one context, resumable rule by rule.

    The engine is Idle when every queued rule has run and Pending otherwise.
    `run(n)` executes up to n pending rules; a failing rule stops the call,
    leaving earlier rules committed and the cursor on the failing rule.
    """

    def __init__(
        self,
        ctx: Optional[ExecutionContext] = None,
        *,
        settings: Optional[FeeEngineSettings] = None,
    ):
        self.settings = settings or FeeEngineSettings()
        if ctx is None:
            ctx = ExecutionContext()
        if self.settings.enable_log:
            ctx.enable_log = True
        self._ctx: Optional[ExecutionContext] = ctx
        self._rules: List[str] = []
        self._initial_vars = copy.deepcopy(ctx.vars)
        self._evaluator = RuleEvaluator(
            decimal_precision=self.settings.decimal_precision,
            null_names=self.settings.null_names,
        )

    @property
    def context(self) -> Optional[ExecutionContext]:
        return self._ctx

    def enable_logging(self) -> "FeeEngine":
        self._require_context().enable_log = True
        return self

    def queue(self, *rules: str) -> "FeeEngine":
        self._rules.extend(rules)
        return self

    def queued_rules(self) -> List[str]:
        return list(self._rules)

    def rule_count(self) -> int:
        return len(self._rules)

    def set_variable(self, name: str, value: Scalar) -> "FeeEngine":
        self._require_context().set_var(name, value)
        return self

    def get_variable(self, name: str) -> Tuple[Scalar, bool]:
        return self._require_context().get_var(name)

    def reset(self) -> "FeeEngine":
        """Back to the variables the engine was built with; the queue is kept."""
        self._require_context().reset(self._initial_vars)
        logger.info("fee engine reset (%d queued rules)", len(self._rules))
        return self

    def run_all(self) -> ExecuteResult:
        ctx = self._require_context()
        return self.run(len(self._rules) - ctx.cursor)

    def run(self, count: int) -> ExecuteResult:
        ctx = self._require_context()
        if count <= 0:
            raise InvalidArgumentError("count must be positive")

        start = ctx.cursor
        if start >= len(self._rules):
            return self._build_result(0)
        end = min(start + count, len(self._rules))

        for index in range(start, end):
            rule = self._rules[index]
            statements = preprocess(rule)
            try:
                result = self._evaluator.evaluate(statements, ctx.snapshot_vars(), rule=rule)
            except RuleExecutionError as exc:
                exc.index = index
                logger.warning("rule %d failed (%s fault); cursor stays at %d", index, exc.kind, index)
                raise
            fee_items = ctx.commit(rule, result)
            ctx.cursor = index + 1
            logger.debug(
                "rule %d executed: %d statement(s), %d fee item(s), %d update(s)",
                index,
                len(statements),
                len(fee_items),
                len(result.updates) if result is not None else 0,
            )

        logger.info("executed %d rule(s); cursor at %d of %d", end - start, end, len(self._rules))
        return self._build_result(end - start)

    def _build_result(self, processed: int) -> ExecuteResult:
        ctx = self._require_context()
        fee_items, logs = ctx.frozen_state()
        return ExecuteResult(
            processed_rules=processed,
            fee_items=fee_items,
            summary=summarize_fee_items(fee_items),
            logs=logs,
            context=ctx,
        )

    def _require_context(self) -> ExecutionContext:
        if self._ctx is None:
            raise InvalidStateError("context cannot be None")
        return self._ctx
