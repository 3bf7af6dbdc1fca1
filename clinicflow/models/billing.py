"""Billing data models."""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class BillingLineItem:
    """An additional fee beyond the base consultation fee."""
    description: str
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {"description": self.description, "amount": self.amount}


@dataclass(frozen=True)
class ConsultationBill:
    """Immutable snapshot of a consultation's fees."""
    base_fee: float
    line_items: Tuple[BillingLineItem, ...] = field(default_factory=tuple)

    @property
    def total(self) -> float:
        # Derived on every access so it can never go stale
        return self.base_fee + sum(item.amount for item in self.line_items)
