"""Billing computation."""

from .calculator import BillingCalculator, parse_amount

__all__ = ["BillingCalculator", "parse_amount"]
