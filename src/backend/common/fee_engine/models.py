from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from .context import ExecutionContext


class FeeItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: Decimal
    currency: str


class LogEntry(BaseModel):
    rule: str
    # Variables as they stood after this rule's mutations were applied.
    vars: Dict[str, Any] = Field(default_factory=dict)
    # Fee items produced by this rule only.
    fee_items: List[FeeItem] = Field(default_factory=list)


class RuleResult(BaseModel):
    fee_items: List[FeeItem] = Field(default_factory=list)
    updates: Dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class ExecuteResult:
    processed_rules: int
    fee_items: List[FeeItem] = field(default_factory=list)
    summary: Dict[str, Decimal] = field(default_factory=dict)
    logs: List[LogEntry] = field(default_factory=list)
    # Live context: variable reads see later runs, the lists above do not.
    context: Optional[ExecutionContext] = None

    def total(self, currency: str) -> Decimal:
        return self.summary.get(currency, Decimal("0"))
