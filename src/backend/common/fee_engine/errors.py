from __future__ import annotations

from typing import Optional


class FeeEngineError(Exception):
    """Base class for everything the fee engine raises."""


class InvalidArgumentError(FeeEngineError, ValueError):
    pass


class InvalidStateError(FeeEngineError, RuntimeError):
    pass


class RuleExecutionError(FeeEngineError):
    """A rule could not be executed.

    `index` is the rule's position in the engine queue. It is None when the
    rule was evaluated directly through `RuleEvaluator`.
    """

    kind = "execution"

    def __init__(
        self,
        message: str,
        *,
        rule: str = "",
        expression: str = "",
        index: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.rule = rule
        self.expression = expression
        self.index = index

    def __str__(self) -> str:
        if self.index is None:
            return self.message
        return f"error executing rule at index {self.index}: {self.message}"


class RuleCompileError(RuleExecutionError):
    kind = "compile"


class RuleEvaluationError(RuleExecutionError):
    kind = "evaluation"
