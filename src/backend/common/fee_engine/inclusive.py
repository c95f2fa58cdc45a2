from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .engine import FeeEngine
from .models import ExecuteResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InclusiveSolution:
    amount: float
    fee_total: Decimal
    total: float
    iterations: int
    converged: bool
    result: ExecuteResult


def solve_inclusive_amount(
    engine: FeeEngine,
    target_total: float,
    *,
    currency: str,
    variable: str = "amount",
    initial_guess: Optional[float] = None,
    tolerance: float = 0.001,
    max_iterations: int = 20,
) -> InclusiveSolution:
    """Find the request amount whose amount + fees (in `currency`) equals `target_total`.

    Each iteration resets the engine, seeds `variable` with the current guess
    and runs every queued rule. The next guess follows the secant through the
    last two (guess, total) points; the first step assumes a slope of 1.
    Guesses are kept in (0, target_total], which holds for non-negative fees.
    """
    if target_total <= 0:
        raise ValueError("target_total must be positive")
    if tolerance <= 0:
        raise ValueError("tolerance must be positive")
    if max_iterations < 1:
        raise ValueError("max_iterations must be >= 1")
    if engine.rule_count() == 0:
        raise ValueError("engine has no queued rules")

    guess = initial_guess if initial_guess is not None else target_total * 0.9
    previous: Optional[tuple[float, float]] = None
    iteration = 0

    while True:
        iteration += 1
        result = engine.reset().set_variable(variable, guess).run_all()
        fee_total = result.total(currency)
        total = guess + float(fee_total)
        solution = InclusiveSolution(
            amount=guess,
            fee_total=fee_total,
            total=total,
            iterations=iteration,
            converged=abs(target_total - total) < tolerance,
            result=result,
        )
        if solution.converged:
            logger.debug("inclusive amount converged after %d iteration(s): %s", iteration, guess)
            return solution
        if iteration >= max_iterations:
            logger.warning("inclusive amount did not converge within %d iterations", max_iterations)
            return solution

        slope = 1.0
        if previous is not None and guess != previous[0]:
            secant = (total - previous[1]) / (guess - previous[0])
            if secant > 0:
                slope = secant
        previous = (guess, total)

        guess += (target_total - total) / slope
        if guess <= 0:
            guess = target_total * 0.5
        if guess > target_total:
            guess = target_total * 0.9
