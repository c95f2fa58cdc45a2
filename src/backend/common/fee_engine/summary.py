from __future__ import annotations

from decimal import Decimal, localcontext
from typing import Dict, Iterable

from .coercion import EXACT_CONTEXT
from .models import FeeItem


def summarize_fee_items(items: Iterable[FeeItem]) -> Dict[str, Decimal]:
    """Total fee items per currency (exact, case-sensitive currency codes).

    Currencies appear in first-seen order.
    """
    totals: Dict[str, Decimal] = {}
    with localcontext(EXACT_CONTEXT):
        for item in items:
            totals[item.currency] = totals.get(item.currency, Decimal("0")) + item.amount
    return totals
