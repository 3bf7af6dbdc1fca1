"""Consultation fee calculator."""

import math
import numbers
import logging
from typing import List

from ..errors import BillLocked, InvalidAmount
from ..models.billing import BillingLineItem, ConsultationBill

logger = logging.getLogger(__name__)


def _is_number(value) -> bool:
    return (isinstance(value, numbers.Real) and not isinstance(value, bool)
            and math.isfinite(value))


def parse_amount(text: str, allow_zero: bool = False) -> float:
    """Parse clinician-entered text into an amount.

    Args:
        text: Raw text, e.g. "200" or " 49.50 "
        allow_zero: Accept 0 (base fees may be waived, line items may not)

    Raises:
        InvalidAmount: If the text is empty, not a number or out of range
    """
    if text is None or not str(text).strip():
        raise InvalidAmount("Please fill all fields")
    try:
        amount = float(str(text).strip())
    except ValueError as e:
        raise InvalidAmount("Please enter a valid amount") from e
    if not math.isfinite(amount) or amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidAmount("Please enter a valid amount")
    return amount


class BillingCalculator:
    """Holds a base fee and ordered line items. The total is never cached."""

    def __init__(self, base_fee: float = 0):
        self._base_fee = 0
        self._line_items: List[BillingLineItem] = []
        self.locked = False
        self.set_base_fee(base_fee)

    @property
    def base_fee(self) -> float:
        return self._base_fee

    @property
    def line_items(self) -> List[BillingLineItem]:
        return list(self._line_items)

    def set_base_fee(self, fee: float) -> None:
        self._check_unlocked()
        if not _is_number(fee) or fee < 0:
            raise InvalidAmount(f"Consultation fee must be a non-negative number, got {fee!r}")
        self._base_fee = fee

    def add_line_item(self, description: str, amount: float) -> BillingLineItem:
        """Append a line item.

        Raises:
            InvalidAmount: If the description is empty or amount is not positive
        """
        self._check_unlocked()
        description = (description or "").strip()
        if not description:
            raise InvalidAmount("Line item description must not be empty")
        if not _is_number(amount) or amount <= 0:
            raise InvalidAmount(f"Line item amount must be positive, got {amount!r}")

        item = BillingLineItem(description=description, amount=amount)
        self._line_items.append(item)
        logger.debug(f"Added line item '{description}': {amount}")
        return item

    def remove_line_item(self, index: int) -> None:
        """Remove the item at index. Out-of-range indexes are ignored."""
        self._check_unlocked()
        if 0 <= index < len(self._line_items):
            removed = self._line_items.pop(index)
            logger.debug(f"Removed line item '{removed.description}'")

    def total(self) -> float:
        return self._base_fee + sum(item.amount for item in self._line_items)

    def bill(self) -> ConsultationBill:
        """Immutable snapshot of the current fees."""
        return ConsultationBill(base_fee=self._base_fee, line_items=tuple(self._line_items))

    def lock(self) -> None:
        """Freeze the bill once it has been submitted successfully."""
        self.locked = True

    def _check_unlocked(self) -> None:
        if self.locked:
            raise BillLocked("Billing was already submitted and can no longer be edited")
