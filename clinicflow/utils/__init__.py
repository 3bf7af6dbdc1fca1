"""Display helpers."""

from .formatting import format_duration, format_currency

__all__ = ["format_duration", "format_currency"]
