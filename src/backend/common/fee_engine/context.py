from __future__ import annotations

import copy
import threading
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .coercion import Scalar

from .models import FeeItem, LogEntry, RuleResult


class ExecutionContext:
    """Variables, fee items and logs shared by every rule an engine runs.

    One lock guards the mutable fields so concurrent reads and writes never
    observe a half-updated dict or list. It does not make a whole `run` call
    atomic: keep at most one run/reset in flight per engine.
    """

    def __init__(
        self,
        vars: Optional[Mapping[str, Scalar]] = None,
        fee_items: Optional[Iterable[FeeItem]] = None,
        logs: Optional[Iterable[LogEntry]] = None,
        *,
        enable_log: bool = False,
    ):
        self._lock = threading.RLock()
        self.vars: Dict[str, Scalar] = dict(vars or {})
        self.fee_items: List[FeeItem] = list(fee_items or [])
        self.logs: List[LogEntry] = list(logs or [])
        self.enable_log = enable_log
        # Number of queued rules already executed.
        self.cursor = 0

    def copy(self) -> "ExecutionContext":
        with self._lock:
            clone = ExecutionContext(
                copy.deepcopy(self.vars),
                self.fee_items,
                self.logs,
                enable_log=self.enable_log,
            )
            clone.cursor = self.cursor
            return clone

    def set_var(self, key: str, value: Scalar) -> None:
        with self._lock:
            self.vars[key] = value

    def get_var(self, key: str) -> Tuple[Scalar, bool]:
        with self._lock:
            if key in self.vars:
                return self.vars[key], True
            return None, False

    def snapshot_vars(self) -> Dict[str, Scalar]:
        with self._lock:
            return dict(self.vars)

    def commit(self, rule: str, result: Optional[RuleResult]) -> List[FeeItem]:
        """Merge one rule's result and log it; returns the rule's own fee items."""
        rule_fee_items: List[FeeItem] = []
        with self._lock:
            if result is not None:
                rule_fee_items = list(result.fee_items)
                self.fee_items.extend(rule_fee_items)
                self.vars.update(result.updates)
            if self.enable_log:
                self.logs.append(LogEntry(rule=rule, vars=dict(self.vars), fee_items=rule_fee_items))
        return rule_fee_items

    def reset(self, vars: Mapping[str, Scalar]) -> None:
        with self._lock:
            self.vars = copy.deepcopy(dict(vars))
            self.fee_items = []
            self.logs = []
            self.cursor = 0

    def frozen_state(self) -> Tuple[List[FeeItem], List[LogEntry]]:
        with self._lock:
            return list(self.fee_items), list(self.logs)
