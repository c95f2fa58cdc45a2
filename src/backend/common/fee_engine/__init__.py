"""Resumable fee rules engine.

Rules are short expressions queued on a `FeeEngine`; running them mutates a
shared `ExecutionContext` and collects `FeeItem`s in execution order:
- `amount = amount * 2` assigns a variable;
- `emit(amount * rate, "USD")` produces a fee item;
- `[emit(100, "USD"), emit(200, "EUR")]` produces several.
No I/O lives here.
"""

from .coercion import Scalar, to_decimal
from .config import FeeEngineSettings, load_settings
from .context import ExecutionContext
from .engine import FeeEngine
from .errors import (
    FeeEngineError,
    InvalidArgumentError,
    InvalidStateError,
    RuleCompileError,
    RuleEvaluationError,
    RuleExecutionError,
)
from .evaluator import RuleEvaluator
from .inclusive import InclusiveSolution, solve_inclusive_amount
from .models import ExecuteResult, FeeItem, LogEntry, RuleResult
from .preprocess import preprocess
from .summary import summarize_fee_items
